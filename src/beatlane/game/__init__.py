"""Real-time judgment and play-session state."""

from beatlane.game.judge import JudgmentEngine
from beatlane.game.session import PlaySession

__all__ = ["JudgmentEngine", "PlaySession"]
