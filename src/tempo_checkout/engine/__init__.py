"""Settlement engine: quotes, call plans, batch execution and recording."""
