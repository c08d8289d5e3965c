"""perp - stream Perplexity answers into the terminal."""

__version__ = "0.1.0"
