from tempo_checkout import Invoice, setup_logger
from tempo_checkout.adapters.evm import TempoWalletAdapter, StablecoinExchangeQuoter, ACCEPTED_TOKENS
from tempo_checkout.engine.events import FallbackRequiredEvent, SettledEvent
from tempo_checkout.servers import CheckoutServer
from tempo_checkout.storage import InMemoryInvoiceStore


setup_logger("DEBUG")

alpha_usd = ACCEPTED_TOKENS[1]

# Seed one open invoice so the demo has something to settle
store = InMemoryInvoiceStore([
    Invoice(
        id="inv_demo",
        merchant_id="merchant_demo",
        merchant_address="0x1111111111111111111111111111111111111111",
        amount="1.50",
        token_address=alpha_usd.address,
        token_symbol=alpha_usd.symbol,
        token_decimals=alpha_usd.decimals,
        title="Coffee",
    )
])

# Wallet key comes from TEMPO_PRIVATE_KEY
app = CheckoutServer(
    wallet=TempoWalletAdapter(),
    quote_service=StablecoinExchangeQuoter(),
    store=store,
    title="Tempo Checkout API",
)


@app.hook(FallbackRequiredEvent)
async def on_fallback(event):
    """Log when the wallet cannot batch atomically."""
    print(f"⚠️ Falling back to sequential calls: {event.reason}")


@app.hook(SettledEvent)
async def on_settled(event):
    """Log settlements."""
    print(f"✅ Settled ({event.mode.value}): {event.tx_hash}")


# Try it:
#   curl localhost:8000/invoices/inv_demo/quote?source_token=0x20c0000000000000000000000000000000000002
#   curl -X POST localhost:8000/invoices/inv_demo/settle -H 'content-type: application/json' \
#        -d '{"source_token": "0x20c0000000000000000000000000000000000002"}'

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="localhost", port=8000, log_level="debug")
