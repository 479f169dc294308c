"""termtile - persistent browser terminals in a tiled pane layout"""

__version__ = "0.1.0"
