"""FastAPI backend for the bot website."""
