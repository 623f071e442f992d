"""speechgen: text to playable speech files through cloud TTS backends."""

__version__ = "0.1.0"
