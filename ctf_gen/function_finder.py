from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable, Protocol

from antlr4 import CommonTokenStream, InputStream
from antlr4.error.ErrorListener import ErrorListener

from .errors import ParseError
from .models import FunctionDescriptor, FunctionParameter

UNKNOWN_TYPE = "unknown"


class SolidityParser(Protocol):
    def parse(self, source: str) -> dict[str, Any]:  # pragma: no cover - interface
        """Return the AST as nested dicts; every node carries a ``loc`` line span."""
        ...


class _RaisingErrorListener(ErrorListener):
    """Turns the first lexer or parser syntax error into a ParseError."""

    def syntaxError(self, recognizer, offendingSymbol, line, column, msg, e):
        raise ParseError(f"Failed to parse Solidity source: line {line}:{column} {msg}")


class SolidityParserAdapter:
    """
    SolidityParser backed by the ``solidity-parser`` package (ANTLR grammar).

    The package's own ``parse()`` keeps ANTLR's console listener and recovers
    from syntax errors, so the lexer/parser pipeline is assembled here with a
    listener that raises instead.
    """

    def parse(self, source: str) -> dict[str, Any]:
        from solidity_parser.parser import AstVisitor, Node
        from solidity_parser.solidity_antlr4.SolidityLexer import SolidityLexer
        from solidity_parser.solidity_antlr4.SolidityParser import SolidityParser as AntlrParser

        listener = _RaisingErrorListener()
        lexer = SolidityLexer(InputStream(source))
        lexer.removeErrorListeners()
        lexer.addErrorListener(listener)
        parser = AntlrParser(CommonTokenStream(lexer))
        parser.removeErrorListeners()
        parser.addErrorListener(listener)

        Node.ENABLE_LOC = True
        tree = parser.sourceUnit()
        try:
            return AstVisitor().visit(tree)
        except Exception as exc:
            raise ParseError(f"Failed to parse Solidity source: {exc}") from exc


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise ParseError(f"Contract file {path.name} is not valid UTF-8: {exc}") from exc


def _walk(node: Any) -> Iterable[dict[str, Any]]:
    if isinstance(node, dict):
        if "type" in node:
            yield node
        for value in node.values():
            yield from _walk(value)
    elif isinstance(node, list):
        for item in node:
            yield from _walk(item)


def type_name_to_str(type_name: Any) -> str:
    """Best-effort rendering of a TypeName node; never raises."""
    if not isinstance(type_name, dict):
        return UNKNOWN_TYPE
    kind = type_name.get("type")
    if kind == "ElementaryTypeName":
        return type_name.get("name") or UNKNOWN_TYPE
    if kind == "UserDefinedTypeName":
        return type_name.get("namePath") or type_name.get("name") or UNKNOWN_TYPE
    if kind == "ArrayTypeName":
        base = type_name_to_str(type_name.get("baseTypeName"))
        length = type_name.get("length")
        if isinstance(length, dict):
            length = length.get("number") or length.get("name") or length.get("value") or ""
        return f"{base}[{length if length is not None else ''}]"
    if kind == "Mapping":
        key = type_name_to_str(type_name.get("keyType"))
        value = type_name_to_str(type_name.get("valueType"))
        return f"mapping({key} => {value})"
    if kind == "FunctionTypeName":
        return "function"
    return type_name.get("name") or UNKNOWN_TYPE


def _parameter_nodes(params: Any) -> list[dict[str, Any]]:
    # ParameterList node in the Python grammar port, a bare list in others
    if isinstance(params, dict):
        params = params.get("parameters")
    if not isinstance(params, list):
        return []
    return [p for p in params if isinstance(p, dict)]


def _line_span(node: dict[str, Any]) -> tuple[int, int]:
    loc = node.get("loc") or {}
    try:
        start = int(loc["start"]["line"])
        end = int(loc["end"]["line"])
    except (KeyError, TypeError, ValueError) as exc:
        raise ParseError(f"Function node {node.get('name')!r} has no source location") from exc
    return start, end


def _visibility(node: dict[str, Any]) -> str:
    # the grammar reports an omitted specifier as "default"
    visibility = node.get("visibility")
    if not visibility or visibility == "default":
        return "public"
    return visibility


def extract_functions(source: str, parser: SolidityParser | None = None) -> list[FunctionDescriptor]:
    """
    Extract every non-constructor function of ``source`` in source order.

    ``source_code`` is sliced from the original text by the node's inclusive
    line span so comments and formatting survive untouched.
    """
    ast_root = (parser or SolidityParserAdapter()).parse(source)
    lines = source.split("\n")

    functions: list[FunctionDescriptor] = []
    for node in _walk(ast_root):
        if node.get("type") != "FunctionDefinition" or node.get("isConstructor"):
            continue

        start, end = _line_span(node)
        parameters = tuple(
            FunctionParameter(
                name=p.get("name") or "",
                type=type_name_to_str(p.get("typeName")),
            )
            for p in _parameter_nodes(node.get("parameters"))
        )
        return_nodes = _parameter_nodes(node.get("returnParameters"))
        returns = tuple(type_name_to_str(p.get("typeName")) for p in return_nodes) or None

        functions.append(
            FunctionDescriptor(
                name=node.get("name") or "",
                visibility=_visibility(node),
                parameters=parameters,
                returns=returns,
                state_mutability=node.get("stateMutability") or None,
                source_code="\n".join(lines[start - 1 : end]),
                start_line=start,
                end_line=end,
            )
        )

    functions.sort(key=lambda fn: fn.start_line)
    return functions


def extract_functions_from_file(path: Path, parser: SolidityParser | None = None) -> list[FunctionDescriptor]:
    return extract_functions(_read_text(path), parser=parser)


def filter_functions_by_name(
    functions: list[FunctionDescriptor], method_name: str | None
) -> list[FunctionDescriptor]:
    if not method_name:
        return functions
    return [fn for fn in functions if fn.name == method_name]
