"""Exception types raised by the FountainScan engine."""


class FountainScanError(Exception):
    """Base exception for engine errors."""

    pass


class MalformedTargetError(FountainScanError):
    """The URL under evaluation could not be parsed."""

    def __init__(self, url: str, reason: str = "unparsable URL"):
        self.url = url
        self.reason = reason
        super().__init__(f"Malformed target {url!r}: {reason}")


class InvalidDomainError(FountainScanError):
    """A list entry was rejected by domain validation."""

    def __init__(self, pattern: str):
        self.pattern = pattern
        super().__init__(f"Invalid domain pattern: {pattern!r}")


class NotFoundError(FountainScanError):
    """A list entry scheduled for removal does not exist."""

    def __init__(self, tag: str, pattern: str):
        self.tag = tag
        self.pattern = pattern
        super().__init__(f"{pattern!r} is not in the {tag} list")


class ProbeTimeoutError(FountainScanError):
    """The reputation probe did not answer in time."""

    def __init__(self, domain: str, timeout: float):
        self.domain = domain
        self.timeout = timeout
        super().__init__(f"Reputation probe for {domain} timed out after {timeout:.1f}s")
