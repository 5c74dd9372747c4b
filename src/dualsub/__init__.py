"""DualSub — dual-language captions with tiered translation caching."""

__version__ = "0.1.0"
