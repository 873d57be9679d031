# errors.py
from enum import Enum


class ErrorKind(Enum):
    SIZE_MISMATCH = "size_mismatch"
    CAPACITY_EXCEEDED = "capacity_exceeded"
    NO_HIDDEN_MESSAGE = "no_hidden_message"
    UNRECOGNIZED_KERNEL = "unrecognized_kernel"
    UNENCODABLE_TEXT = "unencodable_text"


class PixelProbeError(Exception):
    """Base class for recoverable errors raised by the analysis functions."""

    kind = None

    def to_dict(self):
        return {"error": str(self), "kind": self.kind.value if self.kind else None}


class SizeMismatchError(PixelProbeError, ValueError):
    kind = ErrorKind.SIZE_MISMATCH

    def __init__(self, first, second):
        self.first = first
        self.second = second
        super().__init__(
            f"images must have the same size: {first[0]}x{first[1]} vs {second[0]}x{second[1]}"
        )


class CapacityExceededError(PixelProbeError):
    kind = ErrorKind.CAPACITY_EXCEEDED

    def __init__(self, message_length: int, bits_needed: int, bits_available: int):
        self.message_length = message_length
        self.bits_needed = bits_needed
        self.bits_available = bits_available
        self.max_characters = bits_available // 8
        super().__init__(
            f"message too long: at most {self.max_characters} characters fit in this image"
        )

    def to_dict(self):
        out = super().to_dict()
        out.update({
            "max_characters": self.max_characters,
            "message_length": self.message_length,
            "bits_needed": self.bits_needed,
            "bits_available": self.bits_available,
        })
        return out


class NoHiddenMessageError(PixelProbeError):
    kind = ErrorKind.NO_HIDDEN_MESSAGE

    def __init__(self, message="no hidden message found in this image"):
        super().__init__(message)


class UnrecognizedKernelError(PixelProbeError, ValueError):
    kind = ErrorKind.UNRECOGNIZED_KERNEL

    def __init__(self, name, known):
        self.name = name
        super().__init__(f"unknown kernel {name!r}; expected one of {', '.join(known)}")


class UnencodableTextError(PixelProbeError, ValueError):
    kind = ErrorKind.UNENCODABLE_TEXT

    def __init__(self, char, position):
        self.char = char
        self.position = position
        super().__init__(
            f"character {char!r} at position {position} is outside the 7-bit range (code {ord(char)})"
        )
