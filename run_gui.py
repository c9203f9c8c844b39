"""GUI entry point when running from a source checkout."""
import sys
from pathlib import Path

# Ensure the project root is on the path
root = Path(__file__).parent.resolve()
sys.path.insert(0, str(root))

from bookreader.ui.app import main

if __name__ == "__main__":
    main()
