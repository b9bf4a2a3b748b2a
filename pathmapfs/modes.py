"""Translation of virtual access-mode tokens to real file open modes."""

from __future__ import annotations

# Access token -> mode for io.open(). Always binary: raw handles are
# used for positioned byte I/O.
OPEN_MODES: dict[str, str] = {
    "r": "rb",
    "ra": "rb",  # append on a read-only handle has no meaning
    "rw": "r+b",
    "rwa": "a+b",
    "w": "wb",
    "wa": "ab",
}


def open_mode(raw_mode: str) -> str:
    """Convert an access token ("r", "rw", "wa", ...) to an open() mode.

    Raises:
        ValueError: If the token is not one of the known access tokens.
    """
    try:
        return OPEN_MODES[raw_mode]
    except KeyError:
        raise ValueError(f"Unsupported raw mode: {raw_mode!r}") from None


def wants_write(raw_mode: str) -> bool:
    """Return True if the access token requests write access."""
    return "w" in raw_mode
