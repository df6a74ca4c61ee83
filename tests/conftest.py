import sys
from pathlib import Path

# Make ``tempo_checkout`` and the shared ``stubs`` module importable without installation
tests_path = Path(__file__).parent
src_path = tests_path.parent / "src"
for path in (src_path, tests_path):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))
