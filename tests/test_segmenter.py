import pytest

from babelmark.documents import reassemble
from babelmark.segmenter import (
    BatchBuilder,
    ParserState,
    Segmenter,
    extract_alt_text,
    split_lines,
    unquote_yaml,
)
from babelmark.structures import SegmentRole

DOCUMENT = """---
title: "Hello \\"World\\""
description: 'A short post'
date: 2024-01-01
tags
---

# Heading
{{< video src="intro.mp4" >}}
![An image](/images/a.png "Title")
> [!NOTE]
```go
package main
---
title: not front matter
```
Closing line.
"""


def roles(text):
    return [segment.role for segment in Segmenter().segment_text(text)]


def test_one_segment_per_line():
    segments = Segmenter().segment_text(DOCUMENT)

    assert len(segments) == len(DOCUMENT.splitlines())
    assert [segment.index for segment in segments] == list(range(len(segments)))


def test_classification():
    assert roles(DOCUMENT) == [
        SegmentRole.LITERAL,
        SegmentRole.TITLE,
        SegmentRole.DESCRIPTION,
        SegmentRole.LITERAL,
        SegmentRole.LITERAL,
        SegmentRole.LITERAL,
        SegmentRole.LITERAL,
        SegmentRole.BODY_TEXT,
        SegmentRole.LITERAL,
        SegmentRole.ALT_TEXT,
        SegmentRole.LITERAL,
        SegmentRole.LITERAL,
        SegmentRole.LITERAL,
        SegmentRole.LITERAL,
        SegmentRole.LITERAL,
        SegmentRole.LITERAL,
        SegmentRole.BODY_TEXT,
    ]


def test_front_matter_values_are_unquoted():
    segments = Segmenter().segment_text(DOCUMENT)

    assert segments[1].raw_text == 'Hello "World"'
    assert segments[1].original == 'title: "Hello \\"World\\""'
    assert segments[2].raw_text == "A short post"


def test_literals_keep_newline_and_text():
    segments = Segmenter().segment_text("---\n\n{{< x >}}")

    assert [segment.original for segment in segments] == ["---\n", "\n", "{{< x >}}\n"]
    assert all(segment.raw_text == "" for segment in segments)


def test_alt_text_segment():
    segment = Segmenter().segment_text('![An image](/images/a.png "Title")')[0]

    assert segment.role is SegmentRole.ALT_TEXT
    assert segment.raw_text == "An image"
    assert segment.original == '![An image](/images/a.png "Title")'


@pytest.mark.parametrize("line", ["!important", "!]broken["])
def test_malformed_image_is_literal(line):
    assert roles(line) == [SegmentRole.LITERAL]


def test_unknown_front_matter_keys_are_literal():
    text = "---\nTitle: Upper\nsubtitle: Other\ndraft\n---"

    assert roles(text) == [SegmentRole.LITERAL] * 5


def test_blank_front_matter_value_is_not_translatable():
    segment = Segmenter().segment_text("---\ntitle:   \n---")[1]

    assert segment.role is SegmentRole.TITLE
    assert not segment.translatable


def test_third_delimiter_reenters_front_matter():
    text = "---\ntitle: A\n---\ntitle: body text\n---\ntitle: B\n"

    assert roles(text) == [
        SegmentRole.LITERAL,
        SegmentRole.TITLE,
        SegmentRole.LITERAL,
        SegmentRole.BODY_TEXT,
        SegmentRole.LITERAL,
        SegmentRole.TITLE,
    ]


def test_code_fence_inside_front_matter_keeps_context():
    segmenter = Segmenter()
    segments = segmenter.segment_text("---\n```\ntitle: code\n```\ntitle: real\n---")

    assert [segment.role for segment in segments] == [
        SegmentRole.LITERAL,
        SegmentRole.LITERAL,
        SegmentRole.LITERAL,
        SegmentRole.LITERAL,
        SegmentRole.TITLE,
        SegmentRole.LITERAL,
    ]
    assert segmenter.state is ParserState.BODY


def test_state_machine_transitions():
    assert ParserState.BODY.toggle_code_fence() is ParserState.CODE_FENCE_IN_BODY
    assert ParserState.CODE_FENCE_IN_BODY.toggle_code_fence() is ParserState.BODY
    assert (
        ParserState.FRONT_MATTER.toggle_code_fence()
        is ParserState.CODE_FENCE_IN_FRONT_MATTER
    )
    assert ParserState.FRONT_MATTER.toggle_front_matter() is ParserState.BODY
    with pytest.raises(ValueError):
        ParserState.CODE_FENCE_IN_BODY.toggle_front_matter()


def test_state_resets_per_document():
    segmenter = Segmenter()
    segmenter.segment_text("```\nunterminated")

    assert segmenter.segment_text("plain")[0].role is SegmentRole.BODY_TEXT


def test_form_feed_inside_code_fence_stays_on_its_line():
    text = "```c\nint a;\x0c\nint b;\n```\n"
    segments = Segmenter().segment_text(text)

    assert len(segments) == 4
    assert segments[1].original == "int a;\x0c\n"
    assert reassemble(segments, {}) == text


def test_unicode_line_separator_does_not_split_body_line():
    segments = Segmenter().segment_text("Hello\u2028world\n")

    assert len(segments) == 1
    assert segments[0].role is SegmentRole.BODY_TEXT
    assert segments[0].raw_text == "Hello\u2028world"


def test_split_lines_handles_crlf_and_final_newline():
    assert split_lines("a\r\nb\r\n") == ["a", "b"]
    assert split_lines("a\n\nb") == ["a", "", "b"]
    assert split_lines("") == []


def test_unsupported_front_matter_key_is_rejected():
    with pytest.raises(ValueError):
        Segmenter(front_matter_keys=("title", "summary"))


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ('"quoted"', "quoted"),
        ('"a \\\\ b"', "a \\ b"),
        ("'single'", "single"),
        ("'it''s'", "it''s"),
        ('"mismatched\'', '"mismatched\''),
        ('"', '"'),
        ("plain", "plain"),
    ],
)
def test_unquote_yaml(value, expected):
    assert unquote_yaml(value) == expected


def test_extract_alt_text():
    assert extract_alt_text("![alt](x.png)") == "alt"
    assert extract_alt_text("![](x.png)") == ""
    assert extract_alt_text("!no brackets") is None


def test_batch_builder_skips_blank_and_chunks():
    texts = [f"t{i}" for i in range(23)]
    texts[3] = "   "
    batches = BatchBuilder(10).build(texts)

    assert [len(batch.texts) for batch in batches] == [10, 10, 2]
    assert batches[0].positions[:4] == [0, 1, 2, 4]
    assert [batch.batch_id for batch in batches] == [1, 2, 3]
