# test_webapp.py
#
# Run:
#   python -m unittest -v
#
# The LaTeX typesetter is replaced by a fake, so no TeX installation is needed.

import tempfile
import unittest
from pathlib import Path
from unittest import mock

import webapp
from math_renderer import MathRenderError


class FakeTypesetter:
    def render(self, math_source, display_mode):
        if "\\bad" in math_source:
            raise MathRenderError("KaTeX parse error: Undefined control sequence: \\bad")
        return f"<m>{math_source}</m>"


class TestWebApp(unittest.TestCase):
    def setUp(self) -> None:
        patcher = mock.patch.object(webapp, "typesetter", FakeTypesetter())
        patcher.start()
        self.addCleanup(patcher.stop)
        self.client = webapp.app.test_client()

    # ---------- helpers ----------
    def post(self, url, payload):
        return self.client.post(url, json=payload)

    # ---------- page ----------
    def test_index(self):
        r = self.client.get("/")
        self.assertEqual(r.status_code, 200)
        page = r.get_data(as_text=True)
        self.assertIn('id="preview-content"', page)
        self.assertIn("\\usepackage{hyperref}", page)
        self.assertIn('data-debounce-ms="300"', page)

    # ---------- preview ----------
    def test_preview(self):
        r = self.post("/api/preview", {"content": "a $x$"})
        self.assertEqual(r.status_code, 200)
        data = r.get_json()
        self.assertIn("<m>x</m>", data["html"])
        self.assertIsNone(data["error"])

    def test_preview_error_banner(self):
        data = self.post("/api/preview", {"content": "$\\bad$"}).get_json()
        self.assertEqual(data["error"], "Undefined control sequence: \\bad")

    def test_malformed_payloads(self):
        r = self.client.post("/api/preview", data="not json", content_type="application/json")
        self.assertEqual(r.status_code, 400)
        self.assertEqual(self.post("/api/preview", {"text": "x"}).status_code, 400)
        self.assertEqual(self.post("/api/preview", ["x"]).status_code, 400)

    # ---------- completion ----------
    def test_complete(self):
        text = "\\fill[red, "
        data = self.post("/api/complete", {"text": text, "offset": len(text), "trigger": "manual"}).get_json()
        names = [item["text"] for item in data["list"]]
        self.assertNotIn("red", names)
        self.assertIn("blue", names)
        self.assertEqual((data["from"], data["to"]), (len(text), len(text)))

    def test_complete_input_closers_do_not_trigger(self):
        text = "\\fill[red,"
        data = self.post(
            "/api/complete", {"text": text, "offset": len(text), "trigger": "input", "inserted": ","}
        ).get_json()
        self.assertEqual(data, {"list": [], "from": len(text), "to": len(text)})

    def test_complete_cursor_trigger(self):
        text = "\\docu"
        data = self.post("/api/complete", {"text": text, "offset": 5, "trigger": "cursor"}).get_json()
        self.assertEqual(data["list"], [])
        text = "\\usepackage{x"
        data = self.post("/api/complete", {"text": text, "offset": 13, "trigger": "cursor"}).get_json()
        self.assertEqual([i["text"] for i in data["list"]], ["xcolor"])

    def test_complete_no_context_and_bad_trigger(self):
        data = self.post("/api/complete", {"text": "abc", "offset": 3}).get_json()
        self.assertEqual(data["list"], [])
        r = self.post("/api/complete", {"text": "abc", "offset": 3, "trigger": "nope"})
        self.assertEqual(r.status_code, 400)
        r = self.post("/api/complete", {"text": "abc", "offset": "3"})
        self.assertEqual(r.status_code, 400)

    def test_apply(self):
        text = "\\fill[dens"
        data = self.post("/api/apply", {"text": text, "offset": len(text), "index": 0}).get_json()
        self.assertEqual(data, {"text": "\\fill[densely ", "cursor": 14, "reopen": True})

    def test_apply_out_of_range(self):
        text = "\\fill[dens"
        r = self.post("/api/apply", {"text": text, "offset": len(text), "index": 5})
        self.assertEqual(r.status_code, 400)

    # ---------- editor actions ----------
    def test_enter(self):
        text = "\\begin{itemize}"
        data = self.post("/api/enter", {"text": text, "offset": len(text)}).get_json()
        self.assertEqual(data["text"], "\\begin{itemize}\n  \n\\end{itemize}")
        self.assertEqual(data["cursor"], len(text) + 3)
        self.assertEqual(self.post("/api/enter", {"text": text, "offset": 0}).get_json(), {"pass": True})

    def test_environment_and_package(self):
        data = self.post("/api/environment", {"text": "", "offset": 0, "env": "enumerate"}).get_json()
        self.assertTrue(data["text"].startswith("\\begin{enumerate}\n  \\item "))
        data = self.post("/api/package", {"preamble": "\\documentclass{article}", "package": "ulem"}).get_json()
        self.assertEqual(data["preamble"], "\\documentclass{article}\n\\usepackage{ulem}")

    def test_toolbar_controls_on_page(self):
        page = self.client.get("/").get_data(as_text=True)
        self.assertIn('data-group="Diagrams (TikZ)"', page)
        self.assertIn('data-kind="env"', page)

    def test_toolbar_wrapper_and_packages(self):
        data = self.post(
            "/api/toolbar",
            {"text": "old news", "selStart": 0, "selEnd": 3, "group": "Text", "index": 3},
        ).get_json()
        self.assertEqual(data["text"], "\\sout{old} news")
        self.assertEqual((data["selStart"], data["selEnd"]), (10, 10))
        self.assertEqual(data["packages"], ["ulem"])
        self.assertFalse(data["reopen"])

    def test_toolbar_fill_shape_reopens(self):
        data = self.post(
            "/api/toolbar",
            {"text": "", "selStart": 0, "selEnd": 0, "group": "Diagrams (TikZ)", "index": 1},
        ).get_json()
        self.assertTrue(data["text"].startswith("\\fill[]"))
        self.assertEqual(data["selStart"], 6)
        self.assertTrue(data["reopen"])

    def test_toolbar_unknown_item(self):
        base = {"text": "", "selStart": 0, "selEnd": 0}
        self.assertEqual(self.post("/api/toolbar", {**base, "group": "Nope", "index": 0}).status_code, 400)
        self.assertEqual(self.post("/api/toolbar", {**base, "group": "Text", "index": 99}).status_code, 400)
        self.assertEqual(self.post("/api/toolbar", {"text": "", "group": "Text", "index": 0}).status_code, 400)

    def test_table(self):
        data = self.post("/api/table", {"rows": 1, "cols": 2}).get_json()
        self.assertIn("\\begin{tabular}{cc}", data["latex"])

    # ---------- click sync ----------
    def test_sync(self):
        data = self.post("/api/sync", {"content": "ab\ncd", "start": 3, "end": 5}).get_json()
        self.assertEqual(data, {"from": {"line": 1, "ch": 0}, "to": {"line": 1, "ch": 2}})

    def test_sync_outside_document_is_noop(self):
        data = self.post("/api/sync", {"content": "ab", "start": 1, "end": 9}).get_json()
        self.assertEqual(data, {})

    # ---------- math images ----------
    def test_math_digest_validation(self):
        self.assertEqual(self.client.get("/math/xyz.svg").status_code, 404)
        self.assertEqual(self.client.get("/math/" + "a" * 40 + ".svg").status_code, 404)

    def test_math_serves_cached_svg(self):
        with tempfile.TemporaryDirectory() as tmp:
            cache = Path(tmp)
            digest = "0123456789abcdef0123456789abcdef01234567"
            (cache / f"{digest}.svg").write_text("<svg/>", encoding="utf-8")
            with mock.patch.object(webapp, "MATH_CACHE", cache):
                r = self.client.get(f"/math/{digest}.svg")
                self.assertEqual(r.status_code, 200)
                self.assertEqual(r.get_data(as_text=True), "<svg/>")
                r.close()


if __name__ == "__main__":
    unittest.main()
