"""Track filtering and the shuffle used to build a room's track queue."""

import random
from collections.abc import Iterable

from hitster.messaging.types import PlaylistTrack


def playable_tracks(tracks: Iterable[PlaylistTrack]) -> list[PlaylistTrack]:
    """Drop tracks without a known release year; they cannot be scored."""
    return [track for track in tracks if track.release_year is not None]


def shuffle_tracks(tracks: Iterable[PlaylistTrack], rng: random.Random) -> list[PlaylistTrack]:
    """Return a new list in Fisher-Yates order, swapping from the end with j uniform in [0, i]."""
    shuffled = list(tracks)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled
