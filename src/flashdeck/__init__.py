"""flashdeck: SM-2 flashcard scheduling and review sessions."""

from flashdeck.consts import VERSION

__version__ = VERSION
