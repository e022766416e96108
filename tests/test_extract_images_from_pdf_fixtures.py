from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

from PIL import Image

from _pdf_fixtures import FixtureForm, FixtureImage, FixturePage, build_pdf, inline_rgb, paint, rgb_pixels

from extract_pdf_images import (
    ChannelPolicy,
    DocumentLoadFailure,
    EncodingFailure,
    ExtractEngineName,
    ExtractImagesConfig,
    ExtractionResult,
    ImageResolutionFailure,
    Ops,
    extract_images,
)
from extract_pdf_images.engines import PypdfEngine


class TestExtractImagesFromPdfFixtures(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.out_dir = self.root / "out"
        self.out_dir.mkdir()

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _write_pdf(self, data: bytes, name: str = "input.pdf") -> Path:
        pdf = self.root / name
        pdf.write_bytes(data)
        return pdf

    def _one_image_pdf(self) -> Path:
        return self._write_pdf(
            build_pdf(
                pages=[FixturePage(xobjects={"Im1": "img"}, content=paint("Im1"))],
                images={"img": FixtureImage(width=2, height=2, data=rgb_pixels(2, 2))},
            )
        )

    def test_one_page_one_image(self) -> None:
        pdf = self._one_image_pdf()

        results = extract_images(str(pdf), str(self.out_dir))

        expected = str(self.out_dir / "Im1.png")
        self.assertEqual(results, [ExtractionResult(page_number=1, images=[expected])])
        with Image.open(expected) as img:
            self.assertEqual(img.format, "PNG")
            self.assertEqual(img.size, (2, 2))

    def test_repeat_extraction_is_stable(self) -> None:
        pdf = self._one_image_pdf()

        first = extract_images(str(pdf), str(self.out_dir))
        first_bytes = (self.out_dir / "Im1.png").read_bytes()
        second = extract_images(str(pdf), str(self.out_dir))

        self.assertEqual(first, second)
        self.assertEqual((self.out_dir / "Im1.png").read_bytes(), first_bytes)

    def test_pages_without_images_and_shared_objects(self) -> None:
        pdf = self._write_pdf(
            build_pdf(
                pages=[
                    FixturePage(xobjects={"Logo": "logo", "Im1": "photo"}, content=paint("Logo", "Im1")),
                    FixturePage(content=b"BT ET\n"),
                    FixturePage(xobjects={"Logo": "logo"}, content=paint("Logo")),
                ],
                images={
                    "logo": FixtureImage(width=3, height=1, data=rgb_pixels(3, 1)),
                    "photo": FixtureImage(width=2, height=2, data=rgb_pixels(2, 2)),
                },
            )
        )

        results = extract_images(str(pdf), str(self.out_dir))

        self.assertEqual([r.page_number for r in results], [1, 2, 3])
        self.assertEqual(results[0].images, [str(self.out_dir / "Logo.png"), str(self.out_dir / "Im1.png")])
        self.assertEqual(results[1].images, [])
        self.assertEqual(results[2].images, [str(self.out_dir / "Logo.png")])

        doc = PypdfEngine().open_document(pdf_file=pdf)
        try:
            page = doc.get_page(1)
            page.get_operator_list()
            self.assertTrue(page.has_common_object("Logo"))
            self.assertFalse(page.has_common_object("Im1"))
            self.assertEqual(page.get_common_object("Logo").width, 3)
        finally:
            doc.close()

    def test_images_inside_forms_are_prefixed(self) -> None:
        pdf = self._write_pdf(
            build_pdf(
                pages=[FixturePage(xobjects={"Fm1": "form"}, content=b"q /Fm1 Do Q\n")],
                images={"img": FixtureImage(width=2, height=2, data=rgb_pixels(2, 2))},
                forms={"form": FixtureForm(xobjects={"Im1": "img"}, content=paint("Im1"))},
            )
        )

        doc = PypdfEngine().open_document(pdf_file=pdf)
        try:
            ops = doc.get_page(1).get_operator_list()
        finally:
            doc.close()
        self.assertEqual(
            [op for op in ops.fn_array if op in set(Ops)],
            [Ops.PAINT_FORM_XOBJECT_BEGIN, Ops.PAINT_IMAGE_XOBJECT, Ops.PAINT_FORM_XOBJECT_END],
        )

        results = extract_images(str(pdf), str(self.out_dir))
        self.assertEqual(results[0].images, [str(self.out_dir / "Fm1_Im1.png")])

    def test_grayscale_needs_detected_channel_policy(self) -> None:
        pdf = self._write_pdf(
            build_pdf(
                pages=[FixturePage(xobjects={"Im1": "gray"}, content=paint("Im1"))],
                images={"gray": FixtureImage(width=2, height=2, data=bytes([0, 80, 160, 240]), color_space="/DeviceGray")},
            )
        )

        with self.assertRaises(EncodingFailure):
            extract_images(str(pdf), str(self.out_dir))

        config = ExtractImagesConfig(channel_policy=ChannelPolicy.DETECTED, png_quality=100)
        results = extract_images(str(pdf), str(self.out_dir), config=config)
        with Image.open(results[0].images[0]) as img:
            self.assertEqual(img.mode, "L")
            self.assertEqual(img.tobytes(), bytes([0, 80, 160, 240]))

    def test_inline_images_are_named_by_page_and_position(self) -> None:
        pdf = self._write_pdf(
            build_pdf(
                pages=[
                    FixturePage(content=b"BT ET\n"),
                    FixturePage(content=inline_rgb(2, 2) + inline_rgb(2, 2)),
                ]
            )
        )

        doc = PypdfEngine().open_document(pdf_file=pdf)
        try:
            ops = doc.get_page(2).get_operator_list()
        finally:
            doc.close()
        self.assertEqual(
            [args for fn, args in zip(ops.fn_array, ops.args_array) if fn == Ops.PAINT_INLINE_IMAGE_XOBJECT],
            [("img_p1_1",), ("img_p1_2",)],
        )

        results = extract_images(str(pdf), str(self.out_dir))

        self.assertEqual(results[0].images, [])
        self.assertEqual(
            results[1].images,
            [str(self.out_dir / "img_p1_1.png"), str(self.out_dir / "img_p1_2.png")],
        )
        with Image.open(results[1].images[0]) as img:
            self.assertEqual(img.size, (2, 2))

    def test_inline_images_inside_forms_are_skipped(self) -> None:
        pdf = self._write_pdf(
            build_pdf(
                pages=[FixturePage(xobjects={"Fm1": "form"}, content=inline_rgb(2, 2) + b"q /Fm1 Do Q\n")],
                images={"img": FixtureImage(width=2, height=2, data=rgb_pixels(2, 2))},
                forms={"form": FixtureForm(xobjects={"Im1": "img"}, content=inline_rgb(2, 2) + paint("Im1"))},
            )
        )

        results = extract_images(str(pdf), str(self.out_dir))

        self.assertEqual(
            results[0].images,
            [str(self.out_dir / "img_p0_1.png"), str(self.out_dir / "Fm1_Im1.png")],
        )
        self.assertFalse((self.out_dir / "img_p0_2.png").exists())

    def test_dangling_xobject_reference_fails_resolution(self) -> None:
        pdf = self._write_pdf(
            build_pdf(
                pages=[FixturePage(xobjects={"Im1": "img", "Ghost": "#99"}, content=paint("Im1", "Ghost"))],
                images={"img": FixtureImage(width=2, height=2, data=rgb_pixels(2, 2))},
            )
        )

        with self.assertRaises(ImageResolutionFailure) as ctx:
            extract_images(str(pdf), str(self.out_dir))

        self.assertIn("Ghost", str(ctx.exception))
        # the whole operator list is read before anything is encoded
        self.assertEqual(list(self.out_dir.iterdir()), [])

    def test_pypdfium2_engine_names_images_by_position(self) -> None:
        pdf = self._one_image_pdf()
        config = ExtractImagesConfig(engine=ExtractEngineName.PYPDFIUM2)

        results = extract_images(str(pdf), str(self.out_dir), config=config)

        expected = str(self.out_dir / "img_p0_1.png")
        self.assertEqual(results, [ExtractionResult(page_number=1, images=[expected])])
        with Image.open(expected) as img:
            self.assertEqual(img.size, (2, 2))

    def test_unreadable_documents_fail_to_load(self) -> None:
        empty = self._write_pdf(b"", name="empty.pdf")
        missing = self.root / "missing.pdf"
        for engine in ExtractEngineName:
            for pdf in (empty, missing):
                with self.subTest(engine=engine, pdf=pdf.name), self.assertRaises(DocumentLoadFailure):
                    extract_images(str(pdf), str(self.out_dir), config=ExtractImagesConfig(engine=engine))


if __name__ == "__main__":
    unittest.main()
