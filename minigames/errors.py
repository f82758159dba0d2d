class UnknownLevelError(LookupError):
    """Raised when a level or song id is not in the built-in tables."""

    def __init__(self, kind: str, level_id):
        super().__init__(f"unknown {kind} id {level_id!r}")
        self.kind = kind
        self.level_id = level_id
