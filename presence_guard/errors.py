class PresenceGuardError(RuntimeError):
    pass


class InitializationError(PresenceGuardError):
    """Detector setup or camera acquisition failed; the session cannot start."""


class TransientSampleError(PresenceGuardError):
    """A single detection call failed. The sampler skips the tick."""


class LockActionError(PresenceGuardError):
    """The platform refused (or could not run) the lock command."""
