"""Train simulator file readers, air brake models and a Morse sounder."""

__version__ = "0.1.0"