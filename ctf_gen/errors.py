from __future__ import annotations


class CTFError(Exception):
    """Base class for every fatal condition raised by ctf_gen."""


class ConfigError(CTFError):
    pass


class ParseError(CTFError):
    """The contract source is not valid Solidity."""


class AnalysisError(CTFError):
    """The completion service failed while analysing a function."""


class GenerationError(CTFError):
    """The completion service failed, or returned an unusable test artifact."""


class MethodNotFoundError(CTFError):
    def __init__(self, method_name: str, contract_file: str) -> None:
        super().__init__(f"Method {method_name} not found in contract {contract_file}")
        self.method_name = method_name
        self.contract_file = contract_file
