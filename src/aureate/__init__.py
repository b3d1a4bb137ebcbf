from . import cli, config, content, events, game, pipeline

__all__ = ["cli", "config", "content", "events", "game", "pipeline"]
