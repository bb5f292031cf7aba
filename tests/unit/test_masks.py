"""Tests for contentcanvas.core.masks — in-paint and out-paint mask synthesis."""

import pytest
from PIL import Image

from contentcanvas.core.errors import ValidationError
from contentcanvas.core.images import decode_image, encode_image
from contentcanvas.core.masks import (
    MAX_OUTPAINT_PADDING,
    EditMode,
    InpaintParams,
    MaskSynthesizer,
    OutpaintParams,
    Stroke,
)


@pytest.fixture
def synthesizer(test_config) -> MaskSynthesizer:
    return MaskSynthesizer(test_config)


def _values(mask: Image.Image) -> set[int]:
    return {value for _, value in mask.getcolors()}


class TestInpaint:
    """Strokes become a strictly binary paint/keep mask."""

    def test_base_image_unchanged(self, synthesizer, sample_image):
        base, mask = synthesizer.synthesize(
            sample_image, EditMode.INPAINT, InpaintParams(strokes=[Stroke(2, 2, 1)])
        )
        assert base == sample_image
        assert decode_image(mask).size == (8, 6)

    def test_empty_strokes_yield_all_keep(self, synthesizer, sample_image):
        _, mask_ref = synthesizer.synthesize(sample_image, EditMode.INPAINT, InpaintParams())
        mask = decode_image(mask_ref)
        assert mask.mode == "L"
        assert _values(mask) == {0}

    def test_mask_is_binary(self, synthesizer):
        mask = synthesizer.inpaint_mask((40, 40), InpaintParams(strokes=[Stroke(20, 20, 8)]))
        assert _values(mask) == {0, 255}
        assert mask.getpixel((20, 20)) == 255
        assert mask.getpixel((0, 0)) == 0

    def test_overlay_alpha_thresholded(self, synthesizer):
        """Any non-zero overlay alpha is paint, even a faint one."""
        overlay = Image.new("RGBA", (10, 10), (0, 0, 0, 0))
        overlay.putpixel((3, 4), (255, 0, 0, 1))
        overlay.putpixel((7, 7), (255, 0, 0, 120))
        mask = synthesizer.inpaint_mask((10, 10), InpaintParams(overlay=encode_image(overlay)))

        painted = {(x, y) for x in range(10) for y in range(10) if mask.getpixel((x, y)) == 255}
        assert painted == {(3, 4), (7, 7)}

    def test_overlay_resized_to_base(self, synthesizer):
        overlay = Image.new("RGBA", (5, 5), (0, 0, 0, 255))
        mask = synthesizer.inpaint_mask((10, 10), InpaintParams(overlay=encode_image(overlay)))
        assert mask.size == (10, 10)
        assert _values(mask) == {255}

    def test_rejects_outpaint_params(self, synthesizer, sample_image):
        with pytest.raises(ValidationError):
            synthesizer.synthesize(sample_image, EditMode.INPAINT, OutpaintParams(top=1))

    def test_undecodable_base(self, synthesizer):
        with pytest.raises(ValidationError):
            synthesizer.synthesize("data:image/png;base64,aGVsbG8=", EditMode.INPAINT, InpaintParams())


class TestOutpaint:
    """Canvas expansion keeps exactly the original rectangle."""

    @pytest.mark.parametrize("padding", [(3, 0, 1, 5), (0, 4, 0, 0), (2, 2, 2, 2)])
    def test_canvas_and_keep_region(self, synthesizer, sample_image, padding):
        top, right, bottom, left = padding
        base_ref, mask_ref = synthesizer.synthesize(
            sample_image,
            EditMode.OUTPAINT,
            OutpaintParams(top=top, right=right, bottom=bottom, left=left),
        )
        expanded = decode_image(base_ref)
        mask = decode_image(mask_ref)

        assert expanded.size == (8 + left + right, 6 + top + bottom)
        assert mask.size == expanded.size
        for x in range(mask.width):
            for y in range(mask.height):
                inside = left <= x < left + 8 and top <= y < top + 6
                assert mask.getpixel((x, y)) == (0 if inside else 255)

    def test_original_pixels_preserved_and_border_filled(self, synthesizer, sample_image):
        base_ref, _ = synthesizer.synthesize(
            sample_image, EditMode.OUTPAINT, OutpaintParams(top=2, left=3)
        )
        expanded = decode_image(base_ref).convert("RGB")
        assert expanded.getpixel((3, 2)) == (200, 30, 30)
        assert expanded.getpixel((0, 0)) == (255, 255, 255)

    def test_zero_padding_is_valid(self, synthesizer, sample_image):
        base_ref, mask_ref = synthesizer.synthesize(sample_image, EditMode.OUTPAINT, OutpaintParams())
        assert decode_image(base_ref).size == (8, 6)
        assert _values(decode_image(mask_ref)) == {0}

    def test_negative_padding_rejected(self):
        with pytest.raises(ValidationError):
            OutpaintParams(top=-1)

    def test_oversized_padding_rejected(self):
        OutpaintParams(left=MAX_OUTPAINT_PADDING)
        with pytest.raises(ValidationError):
            OutpaintParams(left=MAX_OUTPAINT_PADDING + 1)

    def test_custom_fill_colour(self, test_config, sample_image):
        test_config.outpaint_fill_color = "#808080"
        base_ref, _ = MaskSynthesizer(test_config).synthesize(
            sample_image, EditMode.OUTPAINT, OutpaintParams(bottom=2)
        )
        assert decode_image(base_ref).convert("RGB").getpixel((0, 7)) == (128, 128, 128)
