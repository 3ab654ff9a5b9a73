"""TypeGraph CLI: type-level relationship graphs for C# source sets."""

__version__ = "0.3.0"
