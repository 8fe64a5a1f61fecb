class CompressionError(Exception):
    """Base class for errors raised by the compression engine."""


class ConfigurationError(CompressionError):
    """The static grammar/query bundle or the engine configuration could not be loaded."""


class UnsupportedLanguageError(CompressionError):
    def __init__(self, path: str) -> None:
        super().__init__(f"No language profile for {path!r}")
        self.path = path


class ParseFailure(CompressionError):
    def __init__(self, language: str, detail: str) -> None:
        super().__init__(f"Could not parse {language} source: {detail}")
        self.language = language
        self.detail = detail


class MalformedQueryRule(CompressionError):
    """A capture rule does not compile against its grammar."""

    def __init__(self, language: str, rule_index: int, detail: str) -> None:
        super().__init__(f"Rule #{rule_index} for {language} is malformed: {detail}")
        self.language = language
        self.rule_index = rule_index
        self.detail = detail
