from __future__ import annotations

import sys
from pathlib import Path

try:
    from focusgate.cli import main as cli_main
except ModuleNotFoundError:
    # Fallback for direct script execution: python focusgate/app_entry.py
    project_root = Path(__file__).resolve().parents[1]
    if str(project_root) not in sys.path:
        sys.path.insert(0, str(project_root))
    from focusgate.cli import main as cli_main


def main() -> int:
    # Without arguments the entry point serves the HTTP control surface.
    return cli_main(sys.argv[1:] or ["serve"])


if __name__ == "__main__":
    raise SystemExit(main())
