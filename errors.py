"""
Ledger error taxonomy.
Routers translate these into HTTP responses; the bulk importer catches
write failures per student and keeps going.
"""


class LedgerError(Exception):
    """Base class for every ledger/import failure surfaced to the operator"""


class DuplicateKeyError(LedgerError):
    def __init__(self, registration: str):
        self.registration = registration
        super().__init__(
            f'Registration Number "{registration}" already exists. Please choose a unique one.'
        )


class StudentNotFoundError(LedgerError):
    def __init__(self, registration: str):
        self.registration = registration
        super().__init__(f"Student {registration} not found")


class InstallmentNotFoundError(LedgerError):
    pass


class BatchCommitError(LedgerError):
    """The whole batch failed; nothing from it was written"""


class PhotoUploadError(LedgerError):
    def __init__(self, message: str, upstream: bool = False):
        # upstream = Cloudinary side failure, not a bad file
        self.upstream = upstream
        super().__init__(message)
