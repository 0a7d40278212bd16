"""Client-side session for the Nano Banana API.

Holds what the browser client keeps in memory: the list of past results, the
variant (re-roll with a new seed) action and image download.
"""

from nanobanana.ui.models import HistoryEntry, UploadedImage
from nanobanana.ui.session import GenerationFailed, GenerationSession

__all__ = [
    "GenerationFailed",
    "GenerationSession",
    "HistoryEntry",
    "UploadedImage",
]
