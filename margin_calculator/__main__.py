"""Allow running as: python -m margin_calculator"""

import sys

from margin_calculator.main import serve

if __name__ == "__main__":
    serve(reload="--reload" in sys.argv)
