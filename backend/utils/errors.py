class NotFoundError(LookupError):
    """A referenced document does not exist; message reads '<Resource> not found'."""
