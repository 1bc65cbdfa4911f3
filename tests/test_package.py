import unittest

from epubdoc.errors import PackageUnreadableError
from epubdoc.package import read_manifest, read_metadata, read_spine

from epub_fixtures import opf_xml

BROKEN_OPF = b"<package xmlns=\"http://www.idpf.org/2007/opf\"><metadata>"


class MetadataTests(unittest.TestCase):
    def test_repeated_and_empty_elements(self) -> None:
        opf = opf_xml(
            "",
            "<spine/>",
            metadata=(
                "<dc:title>Title</dc:title>"
                "<dc:creator opf:role=\"aut\">Ada</dc:creator>"
                "<dc:creator>Grace</dc:creator>"
                "<dc:creator>Barbara</dc:creator>"
                "<dc:description/>"
                "<meta name=\"cover\" content=\"img1\"/>"
            ),
        ).encode("utf-8")
        self.assertEqual(
            read_metadata(opf),
            {"title": "Title", "creator": ["Ada", "Grace", "Barbara"], "description": ""},
        )

    def test_legacy_dc_metadata_wrapper(self) -> None:
        opf = (
            b"<package xmlns=\"http://www.idpf.org/2007/opf\"><metadata><dc-metadata"
            b" xmlns:dc=\"http://purl.org/dc/elements/1.1/\"><dc:title>Old</dc:title></dc-metadata>"
            b"</metadata></package>"
        )
        self.assertEqual(read_metadata(opf), {"title": "Old"})

    def test_unparseable_package_yields_empty_metadata(self) -> None:
        with self.assertLogs("epubdoc.package", level="WARNING"):
            self.assertEqual(read_metadata(BROKEN_OPF), {})


class ManifestTests(unittest.TestCase):
    def test_hrefs_are_decoded_and_package_relative(self) -> None:
        opf = opf_xml(
            "<item id=\"ch1\" href=\"Text/ch1.xhtml\" media-type=\"application/xhtml+xml\"/>"
            "<item id=\"ch2\" href=\"Text/chapter%202.xhtml\" media-type=\"application/xhtml+xml\"/>"
            "<item id=\"img\" href=\"./Images/../Images/a.png\" media-type=\"image/png\"/>"
            "<item id=\"nav\" href=\"nav.xhtml\" media-type=\"application/xhtml+xml\" properties=\"nav scripted\"/>",
            "<spine/>",
        ).encode("utf-8")
        manifest = read_manifest(opf, "OEBPS")
        self.assertEqual(list(manifest), ["ch1", "ch2", "img", "nav"])
        self.assertEqual(manifest["ch1"].href, "OEBPS/Text/ch1.xhtml")
        self.assertEqual(manifest["ch2"].href, "OEBPS/Text/chapter 2.xhtml")
        self.assertEqual(manifest["img"].href, "OEBPS/Images/a.png")
        self.assertEqual(manifest["img"].media_type, "image/png")
        self.assertEqual(manifest["nav"].properties, frozenset({"nav", "scripted"}))

    def test_items_without_id_or_href_are_skipped(self) -> None:
        opf = opf_xml(
            "<item href=\"a.xhtml\" media-type=\"application/xhtml+xml\"/>"
            "<item id=\"b\" media-type=\"application/xhtml+xml\"/>"
            "<item id=\"\" href=\"c.xhtml\"/>"
            "<item id=\"d\" href=\"d.xhtml\"/>",
            "<spine/>",
        ).encode("utf-8")
        manifest = read_manifest(opf, "")
        self.assertEqual(list(manifest), ["d"])
        self.assertEqual(manifest["d"].href, "d.xhtml")
        self.assertEqual(manifest["d"].media_type, "")

    def test_duplicate_ids_keep_last(self) -> None:
        opf = opf_xml(
            "<item id=\"a\" href=\"first.xhtml\" media-type=\"application/xhtml+xml\"/>"
            "<item id=\"a\" href=\"second.xhtml\" media-type=\"application/xhtml+xml\"/>",
            "<spine/>",
        ).encode("utf-8")
        with self.assertLogs("epubdoc.package", level="WARNING"):
            manifest = read_manifest(opf, "")
        self.assertEqual(len(manifest), 1)
        self.assertEqual(manifest["a"].href, "second.xhtml")

    def test_unparseable_package_yields_empty_manifest(self) -> None:
        with self.assertLogs("epubdoc.package", level="WARNING"):
            self.assertEqual(read_manifest(BROKEN_OPF, "OEBPS"), {})


class SpineTests(unittest.TestCase):
    def test_spine_order_duplicates_and_dangling_ids(self) -> None:
        opf = opf_xml(
            "<item id=\"a\" href=\"a.xhtml\" media-type=\"application/xhtml+xml\"/>",
            "<spine><itemref idref=\"a\"/><itemref linear=\"no\"/><itemref idref=\"a\"/><itemref idref=\"ghost\"/></spine>",
        ).encode("utf-8")
        self.assertEqual(read_spine(opf), ["a", "a", "ghost"])

    def test_missing_spine_is_a_warning(self) -> None:
        opf = opf_xml("", "").encode("utf-8")
        with self.assertLogs("epubdoc.package", level="WARNING") as captured:
            self.assertEqual(read_spine(opf), [])
        self.assertIn("No spine", captured.output[0])

    def test_unparseable_package_is_fatal(self) -> None:
        with self.assertRaises(PackageUnreadableError):
            read_spine(BROKEN_OPF)


if __name__ == "__main__":
    unittest.main()
