"""Allow ``python -m quotasync``."""
from .cli import main

main()
