class DiffError(ValueError):
    """Base error raised by the patch engine and path helpers.

    `code` is a stable string for programmatic handling, e.g.::

        try:
            apply_change(None, record)
        except DiffError as e:
            if e.code == "INVALID_TARGET":
                ...
    """

    code = "DIFF_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidTarget(DiffError):
    code = "INVALID_TARGET"


class InvalidChange(DiffError):
    code = "INVALID_CHANGE"


class EmptyPath(DiffError):
    code = "EMPTY_PATH"


class NotObject(DiffError):
    code = "NOT_OBJECT"


class InvalidPath(DiffError):
    code = "INVALID_PATH"
