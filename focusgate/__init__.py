"""FocusGate：可在进程重启后继续计时的番茄钟，以及配套的网站拦截。"""

__version__ = "0.1.0"

from .cli import main

__all__ = ["main", "__version__"]
