from dataclasses import dataclass, field

from beartype.typing import Any, Dict, List, Optional
from gherkin.ast_builder import AstBuilder
from gherkin.errors import CompositeParserException, ParserError
from gherkin.parser import Parser
from gherkin.pickles.compiler import Compiler
from gherkin.stream.id_generator import IdGenerator

from stepdiag.data_classes.diagnostics_exception import DiagnosticsError
from stepdiag.settings import GHERKIN_MEDIA_TYPE


@dataclass
class GherkinOptions:
    """Which envelopes generate_messages() emits and which id generator it uses"""

    include_source: bool = False
    include_gherkin_document: bool = True
    include_pickles: bool = True
    new_id: IdGenerator = field(default_factory=IdGenerator)


def _parse_error_envelopes(errors: List[ParserError], uri: str) -> List[Dict[str, Any]]:
    envelopes = []
    for error in errors:
        source = {"uri": uri}
        location = getattr(error, "location", None)
        if location:
            source["location"] = location
        envelopes.append({"parseError": {"message": str(error), "source": source}})
    return envelopes


def generate_messages(
    text: str, uri: str, media_type: str = GHERKIN_MEDIA_TYPE, options: Optional[GherkinOptions] = None
) -> List[Dict[str, Any]]:
    """
    Parse Gherkin source into envelopes.

    Each envelope holds exactly one of `source`, `gherkinDocument`, `pickle` or
    `parseError`. The document and its pickles share one id generator, so the
    astNodeIds of a pickle step refer to nodes of the emitted document.
    """
    if media_type != GHERKIN_MEDIA_TYPE:
        raise ValueError(f"Unsupported media type: {media_type}")
    options = options or GherkinOptions()

    envelopes = []
    if options.include_source:
        envelopes.append({"source": {"uri": uri, "data": text, "mediaType": media_type}})

    parser = Parser(AstBuilder(options.new_id))
    try:
        gherkin_document = parser.parse(text)
    except CompositeParserException as e:
        return envelopes + _parse_error_envelopes(e.errors, uri)
    except ParserError as e:
        return envelopes + _parse_error_envelopes([e], uri)

    gherkin_document["uri"] = uri
    if options.include_gherkin_document:
        envelopes.append({"gherkinDocument": gherkin_document})
    if options.include_pickles:
        for pickle in Compiler(options.new_id).compile(gherkin_document):
            envelopes.append({"pickle": pickle})
    return envelopes


def _add(ast_id_map: Dict[str, Dict[str, Any]], node: Optional[Dict[str, Any]]):
    if node and "id" in node:
        ast_id_map[node["id"]] = node


def _add_tags(ast_id_map: Dict[str, Dict[str, Any]], node: Dict[str, Any]):
    for tag in node.get("tags", []):
        _add(ast_id_map, tag)


def _add_steps(ast_id_map: Dict[str, Dict[str, Any]], node: Dict[str, Any]):
    for step in node.get("steps", []):
        _add(ast_id_map, step)


def _add_children(ast_id_map: Dict[str, Dict[str, Any]], children: List[Dict[str, Any]]):
    for child in children:
        if "background" in child:
            background = child["background"]
            _add(ast_id_map, background)
            _add_steps(ast_id_map, background)
        elif "scenario" in child:
            scenario = child["scenario"]
            _add(ast_id_map, scenario)
            _add_tags(ast_id_map, scenario)
            _add_steps(ast_id_map, scenario)
            for examples in scenario.get("examples", []):
                _add(ast_id_map, examples)
                _add_tags(ast_id_map, examples)
                _add(ast_id_map, examples.get("tableHeader"))
                for row in examples.get("tableBody", []):
                    _add(ast_id_map, row)
        elif "rule" in child:
            rule = child["rule"]
            _add(ast_id_map, rule)
            _add_tags(ast_id_map, rule)
            _add_children(ast_id_map, rule.get("children", []))


def create_ast_id_map(gherkin_document: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    """Map every node id of the document to its node"""
    ast_id_map: Dict[str, Dict[str, Any]] = {}
    feature = gherkin_document.get("feature")
    if feature:
        _add_tags(ast_id_map, feature)
        _add_children(ast_id_map, feature.get("children", []))
    return ast_id_map


def lookup_ast_node(ast_id_map: Dict[str, Dict[str, Any]], ast_node_id: str) -> Dict[str, Any]:
    try:
        return ast_id_map[ast_node_id]
    except KeyError:
        raise DiagnosticsError(f"Expected to find scenario step associated with id = {ast_node_id}") from None
