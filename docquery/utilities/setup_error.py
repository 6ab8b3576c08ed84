class SetupError(Exception):
    """Exception raised for configuration errors, and when a store handle that failed to initialize is used.
    
    `cause` holds the original construction failure, if there was one."""
    
    def __init__(self, message: str, cause: Exception | None = None):
        self.message = message
        self.cause = cause
        super().__init__(self.message)
