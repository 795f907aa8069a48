"""Exceptions of the NX Opus to Ogg Opus converter."""

class NxOpusError(Exception):
    """Base class of all conversion errors."""
    def __init__(self, message: str = "Conversion of NX Opus container failed."):
        super().__init__(message)


class _ParseError(NxOpusError):
    """Structural violation at a known position of the source buffer."""
    stage = "parse"

    def __init__(self, message: str, offset: int|None = None):
        self.offset = offset
        if offset is not None:
            message = f"{self.stage}: {message} (at byte offset 0x{offset:x})"
        else:
            message = f"{self.stage}: {message}"
        super().__init__(message)


class MalformedHeader(_ParseError):
    """Container header is missing, too short or carries the wrong magic."""
    stage = "header"

    def __init__(self, message: str = "Container header is malformed.", offset: int|None = 0):
        super().__init__(message, offset)


class MalformedDataSection(_ParseError):
    """Data section marker at the declared offset is missing or incomplete."""
    stage = "data section"

    def __init__(self, message: str = "Data section is malformed.", offset: int|None = None):
        super().__init__(message, offset)


class MalformedPacketFrame(_ParseError):
    """A length-prefixed packet record is cut off."""
    stage = "packet framing"

    def __init__(self, message: str = "Packet frame is malformed.", offset: int|None = None):
        super().__init__(message, offset)


class TruncatedPacket(_ParseError):
    """Opus packet too short to carry its table-of-contents bytes."""
    stage = "opus toc"

    def __init__(self, message: str = "Opus packet is truncated.", offset: int|None = None,
                 index: int|None = None):
        self.index = index
        if index is not None:
            message = f"packet #{index}: {message}"
        super().__init__(message, offset)


class NxOpusIOError(NxOpusError):
    """Reading the source or writing the Ogg output failed."""
    def __init__(self, message: str = "I/O error during conversion."):
        super().__init__(message)
