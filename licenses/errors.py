"""Exceptions raised by the licensing core."""

class LicenseError(Exception):
    """Base exception for licensing operations."""
    pass

class NotFoundError(LicenseError):
    """Raised when a referenced record does not exist."""
    pass

class BeatNotFoundError(NotFoundError):
    """Raised when a beat is not found."""
    def __init__(self, beat_id):
        self.beat_id = beat_id
        super().__init__(f"Beat {beat_id} not found")

class TierNotFoundError(NotFoundError):
    """Raised when a tier is missing from the catalog or disabled."""
    def __init__(self, tier_type: str):
        self.tier_type = tier_type
        super().__init__(f"Tier {tier_type} not found or not enabled")

class StoreNotFoundError(NotFoundError):
    """Raised when the seller's store cannot be resolved."""
    pass

class LicenseNotFoundError(NotFoundError):
    """Raised when a beat license is not found."""
    pass

class DownloadUnavailableError(NotFoundError):
    """Raised when a licensed file has no stored download location."""
    pass

class ConflictError(LicenseError):
    """Raised when an operation would break an ownership rule."""
    pass

class BeatAlreadySoldError(ConflictError):
    """Raised when a beat has been withdrawn by an exclusive sale."""
    def __init__(self, beat_id):
        self.beat_id = beat_id
        super().__init__("This beat has already been sold exclusively")

class DuplicateLicenseError(ConflictError):
    """Raised when the buyer already holds a conflicting license."""
    def __init__(self, tier_type=None):
        self.tier_type = tier_type
        if tier_type:
            message = f"You already own a {tier_type} license for this beat"
        else:
            message = "You already own a license for this beat"
        super().__init__(message)

class FileNotIncludedError(LicenseError):
    """Raised when a file type is not delivered under a license's tier."""
    def __init__(self, file_type: str, tier_name: str):
        self.file_type = file_type
        self.tier_name = tier_name
        super().__init__(f"File type '{file_type}' not included in your {tier_name} license")

__all__ = [
    'LicenseError',
    'NotFoundError',
    'BeatNotFoundError',
    'TierNotFoundError',
    'StoreNotFoundError',
    'LicenseNotFoundError',
    'DownloadUnavailableError',
    'ConflictError',
    'BeatAlreadySoldError',
    'DuplicateLicenseError',
    'FileNotIncludedError'
]
