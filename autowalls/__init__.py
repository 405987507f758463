# Wall detection for battle-map images

__version__ = "0.1.0"
