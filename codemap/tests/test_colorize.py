import unittest

from codemap.agent.colorize import (
    SUBGRAPH_FILL_PLACEHOLDER_CYCLE,
    colorize_diagram,
    extract_subgraph_ids,
    strip_fill_from_line,
)


class ExtractSubgraphIdsTests(unittest.TestCase):
    def test_supported_declaration_forms(self) -> None:
        diagram = "\n".join(
            [
                "graph TD",
                "  subgraph auth",
                "  end",
                "  subgraph db [Database]",
                "  end",
                '  subgraph api["Public API"]',
                "  end",
                "  SUBGRAPH Cache",
                "  end",
            ]
        )
        self.assertEqual(extract_subgraph_ids(diagram), ["auth", "db", "api", "Cache"])

    def test_duplicates_keep_first_position(self) -> None:
        diagram = "subgraph a\nend\nsubgraph b\nend\nsubgraph a\nend"
        self.assertEqual(extract_subgraph_ids(diagram), ["a", "b"])

    def test_crlf_line_endings(self) -> None:
        self.assertEqual(extract_subgraph_ids("graph TD\r\nsubgraph x\r\nend"), ["x"])


class StripFillTests(unittest.TestCase):
    def test_non_directive_line_unchanged(self) -> None:
        self.assertEqual(strip_fill_from_line("  a --> b"), "  a --> b")

    def test_fill_removed_other_attributes_kept(self) -> None:
        self.assertEqual(
            strip_fill_from_line("style A fill:#fff,stroke:#333"),
            "style A stroke:#333",
        )

    def test_fill_only_directive_dropped(self) -> None:
        self.assertIsNone(strip_fill_from_line("classDef hot fill:#f00,fill-opacity:0.5"))


class ColorizeDiagramTests(unittest.TestCase):
    def test_one_style_line_per_subgraph_in_order(self) -> None:
        diagram = "graph TD\nsubgraph one\nend\nsubgraph two\nend\nsubgraph three\nend"
        result = colorize_diagram(diagram)

        style_lines = [line for line in result.split("\n") if line.startswith("style ")]
        self.assertEqual(
            style_lines,
            [
                f"style one fill:{SUBGRAPH_FILL_PLACEHOLDER_CYCLE[0]}",
                f"style two fill:{SUBGRAPH_FILL_PLACEHOLDER_CYCLE[1]}",
                f"style three fill:{SUBGRAPH_FILL_PLACEHOLDER_CYCLE[2]}",
            ],
        )
        self.assertIn("end\n\nstyle one", result)

    def test_palette_wraps_after_eight(self) -> None:
        diagram = "graph TD\n" + "\n".join(f"subgraph s{i}\nend" for i in range(9))
        result = colorize_diagram(diagram)
        self.assertTrue(result.endswith(f"style s8 fill:{SUBGRAPH_FILL_PLACEHOLDER_CYCLE[0]}"))

    def test_model_fills_are_replaced(self) -> None:
        diagram = "\n".join(
            [
                "graph TD",
                "subgraph login",
                "  a --> b",
                "end",
                "style login fill:#123456",
                "style a fill:#000,stroke-width:2px",
            ]
        )
        result = colorize_diagram(diagram)

        self.assertNotIn("#123456", result)
        self.assertNotIn("fill:#000", result)
        self.assertIn("style a stroke-width:2px", result)
        self.assertTrue(result.endswith(f"style login fill:{SUBGRAPH_FILL_PLACEHOLDER_CYCLE[0]}"))

    def test_idempotent(self) -> None:
        diagram = "graph TD\nsubgraph a\nx --> y\nend\nsubgraph b\nend"
        once = colorize_diagram(diagram)
        self.assertEqual(colorize_diagram(once), once)

    def test_no_subgraphs_returns_sanitized_text(self) -> None:
        diagram = "graph TD\n  a --> b\n  style a fill:#fff\n"
        self.assertEqual(colorize_diagram(diagram), "graph TD\n  a --> b")

    def test_empty_diagram(self) -> None:
        self.assertEqual(colorize_diagram("   \n"), "")


if __name__ == "__main__":
    unittest.main()
