"""Build-time converters for handheld arcade assets: PNG images to fonts, images and splash screens, MIDI songs to BBA data."""

__version__ = "0.1.0"