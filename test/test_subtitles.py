"""SRT 생성(블록 재분할/구간 필터/시간 포맷) 테스트"""
import re

import pytest

from backend.app.schemas import Caption, SegmentationConfig
from backend.app.services.subtitles import (
    format_srt_time,
    generate_srt,
    iter_blocks,
    srt_filename,
    write_srt,
)


def _cap(cid, start, end, text):
    return Caption(id=cid, start_time=start, end_time=end, text=text)


def _cfg(**kw):
    kw.setdefault("words_per_line", 5)
    kw.setdefault("lines_per_caption", 2)
    return SegmentationConfig(**kw)


TWELVE = "one two three four five six seven eight nine ten eleven twelve"


def test_single_short_caption():
    out = generate_srt([_cap("1", 0, 2, "hello world")], _cfg())
    assert out == "1\n00:00:00,000 --> 00:00:02,000\nhello world\n\n"


def test_long_caption_is_split_proportionally():
    out = generate_srt([_cap("1", 0, 10, TWELVE)], _cfg())
    assert out == (
        "1\n00:00:00,000 --> 00:00:08,333\n"
        "one two three four five\n"
        "six seven eight nine ten\n\n"
        "2\n00:00:08,333 --> 00:00:10,000\n"
        "eleven twelve\n\n"
    )


def test_partial_overlap_is_clipped():
    out = generate_srt([_cap("1", 5, 15, "clipped")], _cfg(custom_start_time=10, custom_end_time=20))
    assert out == "1\n00:00:10,000 --> 00:00:15,000\nclipped\n\n"


def test_partial_overlap_is_clipped_at_end():
    out = generate_srt([_cap("1", 5, 15, "clipped")], _cfg(custom_end_time=12))
    assert out == "1\n00:00:05,000 --> 00:00:12,000\nclipped\n\n"


def test_long_caption_straddling_both_bounds_tiles_clipped_range():
    # [0,20] 을 [4,16] 으로 자르면 단어당 1초
    caption = _cap("1", 0, 20, TWELVE)
    cfg = _cfg(words_per_line=2, lines_per_caption=1, custom_start_time=4, custom_end_time=16)
    blocks = list(iter_blocks([caption], cfg))

    assert [b[0] for b in blocks] == [1, 2, 3, 4, 5, 6]
    assert [(b[1], b[2]) for b in blocks] == [
        pytest.approx((4, 6)), pytest.approx((6, 8)), pytest.approx((8, 10)),
        pytest.approx((10, 12)), pytest.approx((12, 14)), pytest.approx((14, 16)),
    ]
    assert blocks[-1][2] == 16
    assert blocks[0][3] == ["one two"]

    out = generate_srt([caption], cfg)
    assert out.startswith("1\n00:00:04,000 --> 00:00:06,000\none two\n\n")
    assert out.endswith("6\n00:00:14,000 --> 00:00:16,000\neleven twelve\n\n")


def test_caption_outside_range_is_dropped():
    assert generate_srt([_cap("1", 0, 2, "gone")], _cfg(custom_start_time=5)) == ""
    assert generate_srt([_cap("1", 30, 32, "gone")], _cfg(custom_end_time=20)) == ""


def test_touching_range_boundary_is_not_overlap():
    # [0,5) 와 시작 5 는 겹치지 않음
    assert generate_srt([_cap("1", 0, 5, "edge")], _cfg(custom_start_time=5)) == ""


def test_empty_timeline():
    assert generate_srt([], _cfg()) == ""


def test_degenerate_and_empty_text_are_skipped():
    captions = [
        _cap("a", 3, 3, "zero length"),
        _cap("b", 4, 2, "inverted"),
        _cap("c", 5, 6, "   "),
        _cap("d", 6, 7, "kept"),
    ]
    out = generate_srt(captions, _cfg())
    assert out == "1\n00:00:06,000 --> 00:00:07,000\nkept\n\n"


def test_indices_are_contiguous_after_drops_and_splits():
    captions = [
        _cap("1", 0, 1, "dropped"),
        _cap("2", 2, 6, " ".join(f"w{i}" for i in range(25))),
        _cap("3", 6, 7, "short"),
    ]
    out = generate_srt(captions, _cfg(custom_start_time=1.5))
    indices = [int(x) for x in re.findall(r"^(\d+)\n\d\d:", out, flags=re.MULTILINE)]
    assert indices == [1, 2, 3, 4]


def test_sub_blocks_cover_range_without_gaps():
    caption = _cap("1", 1.0, 4.0, " ".join(f"w{i}" for i in range(23)))
    blocks = list(iter_blocks([caption], _cfg(words_per_line=3, lines_per_caption=2)))
    assert blocks[0][1] == pytest.approx(1.0)
    assert blocks[-1][2] == pytest.approx(4.0)
    for prev, nxt in zip(blocks, blocks[1:]):
        assert prev[2] == pytest.approx(nxt[1])
        assert prev[1] <= nxt[1]
    assert sum(len(" ".join(b[3]).split()) for b in blocks) == 23


def test_lines_are_wrapped_by_words_per_line():
    blocks = list(iter_blocks([_cap("1", 0, 3, "a b c d e f g")], _cfg(words_per_line=3, lines_per_caption=3)))
    assert len(blocks) == 1
    assert blocks[0][3] == ["a b c", "d e f", "g"]


def test_output_is_sorted_by_start_time():
    captions = [_cap("late", 5, 6, "second"), _cap("early", 1, 2, "first")]
    out = generate_srt(captions, _cfg())
    assert out.index("first") < out.index("second")
    assert out.startswith("1\n00:00:01,000")


def test_generate_is_deterministic():
    captions = [_cap("1", 0, 10, TWELVE), _cap("2", 10, 12.5, "and more words here")]
    cfg = _cfg(words_per_line=2, lines_per_caption=1)
    assert generate_srt(captions, cfg) == generate_srt(captions, cfg)


def test_invalid_config_is_clamped():
    cfg = SegmentationConfig.model_construct(
        words_per_line=0, lines_per_caption=0, custom_start_time=None, custom_end_time=None
    )
    out = generate_srt([_cap("1", 0, 2, "a b")], cfg)
    assert out.count("-->") == 2


def test_config_rejects_non_positive_values():
    with pytest.raises(ValueError):
        SegmentationConfig(words_per_line=0)
    with pytest.raises(ValueError):
        SegmentationConfig(lines_per_caption=-1)


def test_config_accepts_camel_case():
    cfg = SegmentationConfig.model_validate({"wordsPerLine": 3, "linesPerCaption": 1, "customEndTime": 9})
    assert cfg.words_per_block == 3
    assert cfg.custom_end_time == 9


@pytest.mark.parametrize(
    "seconds,expected",
    [
        (0, "00:00:00,000"),
        (-3, "00:00:00,000"),
        (61.5, "00:01:01,500"),
        (3725.25, "01:02:05,250"),
        (10 / 12 * 10, "00:00:08,333"),
    ],
)
def test_format_srt_time(seconds, expected):
    assert format_srt_time(seconds) == expected


def test_srt_filename():
    assert srt_filename("My Video") == "My Video.srt"
    assert srt_filename("clip.SRT") == "clip.SRT"
    assert srt_filename("") == "captions.srt"


def test_write_srt(tmp_path):
    out = write_srt([_cap("1", 0, 2, "hello world")], _cfg(), tmp_path / "sub" / "x.srt")
    assert out.read_text(encoding="utf-8").startswith("1\n00:00:00,000 --> 00:00:02,000\n")
