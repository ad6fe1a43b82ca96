"""Error types raised by the profiler bootstrap.

Configuration and logging problems never surface as exceptions; they are
logged and replaced with defaults. Only failures the host must act on
(a missing or broken integrations manifest, a missing profiler path) are
raised, each carrying the HRESULT code handed back to the runtime.
"""

# E_FAIL as a signed 32-bit HRESULT (0x80004005)
E_FAIL = -2147467259


class ProfilerError(Exception):
    """Base error carrying an HRESULT code."""

    def __init__(self, message: str, code: int = E_FAIL):
        super().__init__(message)
        self.code = code


class IntegrationsLoadError(ProfilerError):
    """The integrations manifest could not be located, read or parsed."""

    def __init__(self, message: str, path: str = "", code: int = E_FAIL):
        super().__init__(message, code=code)
        self.path = path
