class ViewRenderError(Exception):
    # base exception for all application-specific errors.
    pass

class ConfigError(ViewRenderError):
    # errors related to configuration.
    pass

class ValidationError(ViewRenderError):
    # helper registration rejected: bad argument, contract, name or duplicate.
    def __init__(self, message: str, type_name: str = "", kind: str = ""):
        super().__init__(message)
        self.message = message
        self.type_name = type_name
        self.kind = kind

class ResourceError(ViewRenderError):
    # i/o, permission and size ceiling failures.
    def __init__(self, message: str, path: str = "", limit: int = 0, size: int = 0):
        super().__init__(message)
        self.message = message
        self.path = path
        self.limit = limit
        self.size = size

class HelperCallError(ViewRenderError):
    # a registered helper raised, or returned a non-nil error member.
    def __init__(self, name: str, error: BaseException):
        super().__init__(f"error calling {name}: {error}")
        self.name = name
        self.error = error

class TemplateError(ViewRenderError):
    """A classified template failure, addressable by file and line.

    ``root`` holds the raw source of the offending fragment when known and
    ``target`` the reference name the failure is about, if any.
    """
    kind = "render"

    def __init__(
        self,
        message: str,
        *,
        error_type: str = "",
        basename: str = "",
        line: int = 0,
        column: int = 0,
        root: str = "",
        target: str = "",
    ):
        super().__init__(message)
        self.message = message
        self.error_type = error_type
        self.basename = basename
        self.line = line
        self.column = column
        self.root = root
        self.target = target

    @property
    def retryable(self) -> bool:
        return bool(self.target)

    def __str__(self) -> str:
        if self.line == 0:
            return self.message
        return f"{self.basename}:{self.line}: {self.message}"

class ParseError(TemplateError):
    kind = "parse"

class ExecutionError(TemplateError):
    kind = "execution"

class NotDefinedError(TemplateError):
    # the referenced name has no entry.
    kind = "not_defined"

class RecursionLimitError(TemplateError):
    # depth or attempt ceiling reached; terminal.
    kind = "recursion"

    @property
    def retryable(self) -> bool:
        return False
