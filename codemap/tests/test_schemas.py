import json
import unittest

from codemap.agent.schemas import (
    CodemapOutlineResponse,
    CodemapResponse,
    LocationsResponse,
    MalformedStructuredDataError,
    NoStructuredDataError,
    ParseFailure,
    decode_model_output,
    decode_suggestions,
    extract_diagram,
)


def _fenced(payload: object) -> str:
    return f"Here you go:\n```json\n{json.dumps(payload)}\n```\n"


class DecodeModelOutputTests(unittest.TestCase):
    def test_prose_without_json_is_no_structured_data(self) -> None:
        with self.assertRaises(NoStructuredDataError) as ctx:
            decode_model_output("I could not find anything relevant.", LocationsResponse)
        self.assertIsInstance(ctx.exception, ParseFailure)
        self.assertEqual(ctx.exception.raw_text, "I could not find anything relevant.")

    def test_broken_json_is_malformed(self) -> None:
        with self.assertRaises(MalformedStructuredDataError):
            decode_model_output('```json\n{"locations": [\n```', LocationsResponse)

    def test_schema_mismatch_is_malformed(self) -> None:
        with self.assertRaises(MalformedStructuredDataError):
            decode_model_output(_fenced({"locations": []}), LocationsResponse)

    def test_camel_case_fields_and_numeric_ids(self) -> None:
        decoded = decode_model_output(
            _fenced(
                {
                    "title": "Login",
                    "traces": [{"id": 1, "title": "Request"}, {"id": "2", "title": "Session"}],
                }
            ),
            CodemapOutlineResponse,
        )
        self.assertEqual([trace.id for trace in decoded.traces], ["1", "2"])

    def test_bare_json_with_surrounding_prose(self) -> None:
        text = 'Result: {"locations": [{"id": "a", "path": "x.py", "lineNumber": 3}]} done'
        decoded = decode_model_output(text, LocationsResponse)
        self.assertEqual(decoded.locations[0].line_number, 3)

    def test_line_number_below_one_rejected(self) -> None:
        with self.assertRaises(MalformedStructuredDataError):
            decode_model_output(
                _fenced({"locations": [{"id": "a", "path": "x.py", "lineNumber": 0}]}),
                LocationsResponse,
            )

    def test_duplicate_location_ids_rejected(self) -> None:
        location = {"id": "1a", "path": "x.py", "lineNumber": 1}
        payload = {
            "title": "T",
            "traces": [
                {"id": "1", "title": "A", "locations": [location]},
                {"id": "2", "title": "B", "locations": [location]},
            ],
        }
        with self.assertRaises(MalformedStructuredDataError):
            decode_model_output(_fenced(payload), CodemapResponse)


class DecodeSuggestionsTests(unittest.TestCase):
    def test_array(self) -> None:
        suggestions = decode_suggestions('[{"id": "s1", "text": "How is X built?"}, {"text": "Y?"}]')
        self.assertEqual([s.text for s in suggestions], ["How is X built?", "Y?"])
        self.assertIsNone(suggestions[1].id)

    def test_object_is_malformed(self) -> None:
        with self.assertRaises(MalformedStructuredDataError):
            decode_suggestions('{"text": "not a list"}')


class ExtractDiagramTests(unittest.TestCase):
    def test_mermaid_fence_preferred(self) -> None:
        text = "```mermaid\ngraph TD\n  a --> b\n```"
        self.assertEqual(extract_diagram(text), "graph TD\n  a --> b")

    def test_json_trace_text_diagram(self) -> None:
        self.assertEqual(
            extract_diagram(_fenced({"traceTextDiagram": "graph LR\n  x --> y"})),
            "graph LR\n  x --> y",
        )

    def test_missing_diagram(self) -> None:
        with self.assertRaises(NoStructuredDataError):
            extract_diagram("no diagram today")


if __name__ == "__main__":
    unittest.main()
