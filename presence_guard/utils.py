import time


def monotonic_ms() -> float:
    return time.monotonic() * 1000.0


def describe_error(exc: BaseException) -> str:
    # str(exc) is empty for some opencv / subprocess errors
    return str(exc) or exc.__class__.__name__
