from __future__ import annotations

import pytest

from radioflow.exceptions import ConfigurationError, NoInputError
from radioflow.models.identity import ProgramIdentity
from radioflow.models.segment import (
    CombineWithBackgroundSegment,
    Recording,
    SilenceSegment,
    SingleSegment,
)
from radioflow.pipeline.resolver import (
    SystemAssetCatalog,
    build_segment_plan,
    detect_variant,
    extract_question_id,
    extract_timestamp,
    files_used,
    parse_segments,
    recording_filter,
)

from radio_testkit import CDN, kids_file

ASSETS = SystemAssetCatalog(base_url=CDN)


def _rec(name: str) -> Recording:
    return Recording(filename=name, url=f"https://store.test/en/32/spookyland/{name}")


def test_build_segment_plan_orders_questions_and_recordings(identity: ProgramIdentity) -> None:
    recordings = [
        _rec(kids_file(2, 500)),
        _rec(kids_file(1, 300)),
        _rec(kids_file(2, 100)),
        _rec(kids_file(1, 200)),
    ]

    plan = build_segment_plan(recordings, identity, ASSETS)

    assert [s.kind for s in plan.segments] == [
        "single",
        "single",
        "single",
        "combine_with_background",
        "single",
        "combine_with_background",
        "single",
        "single",
    ]
    assert plan.segments[0] == SingleSegment(f"{CDN}/jingles/intro-jingle.mp3")
    assert plan.segments[1] == SingleSegment(f"{CDN}/spookyland/other/spookyland-intro-educators.mp3")
    assert plan.segments[2] == SingleSegment(f"{CDN}/spookyland/questions/spookyland-QID1.mp3")

    q1 = plan.segments[3]
    assert isinstance(q1, CombineWithBackgroundSegment)
    assert [u.rsplit("/", 1)[-1] for u in q1.answer_urls] == [kids_file(1, 200), kids_file(1, 300)]
    assert q1.background_url == f"{CDN}/spookyland/other/spookyland-background.mp3"

    q2 = plan.segments[5]
    assert isinstance(q2, CombineWithBackgroundSegment)
    assert [u.rsplit("/", 1)[-1] for u in q2.answer_urls] == [kids_file(2, 100), kids_file(2, 500)]

    assert plan.segments[-2] == SingleSegment(f"{CDN}/jingles/outro-jingle.mp3")
    assert plan.segments[-1] == SingleSegment(f"{CDN}/spookyland/other/spookyland-outro-educators.mp3")
    assert plan.question_ids == [1, 2]


def test_parent_variant_uses_parents_role() -> None:
    identity = ProgramIdentity("spookyland", "32", "parent")
    plan = build_segment_plan([_rec("parent_abc-world_spookyland-lmid_32-question_1-tm_1.mp3")], identity, ASSETS)
    assert plan.segments[1] == SingleSegment(f"{CDN}/spookyland/other/spookyland-intro-parents.mp3")
    assert plan.segments[-1] == SingleSegment(f"{CDN}/spookyland/other/spookyland-outro-parents.mp3")


def test_question_groups_sort_numerically(identity: ProgramIdentity) -> None:
    plan = build_segment_plan([_rec(kids_file(10, 1)), _rec(kids_file(9, 1))], identity, ASSETS)
    assert plan.question_ids == [9, 10]


def test_explicit_fields_take_precedence_over_filename(identity: ProgramIdentity) -> None:
    recordings = [
        Recording(filename="a.mp3", url="https://x.test/a.mp3", question_id=3, timestamp=20),
        Recording(filename="b.mp3", url="https://x.test/b.mp3", question_id=3, timestamp=10),
    ]
    plan = build_segment_plan(recordings, identity, ASSETS)
    combine = plan.segments[3]
    assert isinstance(combine, CombineWithBackgroundSegment)
    assert combine.answer_urls == ("https://x.test/b.mp3", "https://x.test/a.mp3")
    assert combine.question_id == 3


def test_undated_recordings_go_last_in_arrival_order(identity: ProgramIdentity) -> None:
    recordings = [
        Recording(filename="x-question_1-late.mp3", url="https://x.test/u1.mp3"),
        _rec(kids_file(1, 50)),
        Recording(filename="y-question_1-late.mp3", url="https://x.test/u2.mp3"),
        _rec(kids_file(1, 10)),
    ]
    plan = build_segment_plan(recordings, identity, ASSETS)
    combine = plan.segments[3]
    assert isinstance(combine, CombineWithBackgroundSegment)
    names = [u.rsplit("/", 1)[-1] for u in combine.answer_urls]
    assert names == [kids_file(1, 10), kids_file(1, 50), "u1.mp3", "u2.mp3"]


def test_recording_without_question_id_is_skipped(identity: ProgramIdentity, caplog) -> None:
    recordings = [_rec("mystery.mp3"), _rec(kids_file(1, 1))]
    with caplog.at_level("WARNING"):
        plan = build_segment_plan(recordings, identity, ASSETS)
    assert plan.answer_count() == 1
    assert "mystery.mp3" in caplog.text


def test_empty_recordings_raise_no_input(identity: ProgramIdentity) -> None:
    with pytest.raises(NoInputError):
        build_segment_plan([], identity, ASSETS)


def test_only_unusable_recordings_raise_no_input(identity: ProgramIdentity) -> None:
    with pytest.raises(NoInputError):
        build_segment_plan([_rec("mystery.mp3")], identity, ASSETS)


def test_recordings_accept_dicts_and_urls(identity: ProgramIdentity) -> None:
    plan = build_segment_plan(
        [
            {"url": f"https://x.test/{kids_file(1, 2)}"},
            f"https://x.test/{kids_file(1, 1)}",
        ],
        identity,
        ASSETS,
    )
    combine = plan.segments[3]
    assert isinstance(combine, CombineWithBackgroundSegment)
    assert combine.answer_urls[0].endswith(kids_file(1, 1))


def test_filename_parsers() -> None:
    assert extract_question_id(kids_file(7, 123)) == 7
    assert extract_timestamp(kids_file(7, 123)) == 123
    assert extract_question_id("nothing.mp3") is None
    assert extract_timestamp("nothing.mp3") is None


def test_detect_variant() -> None:
    assert detect_variant([kids_file(1, 1)]) == "kids"
    assert detect_variant(["parent_x-world_a-lmid_1-question_1-tm_1.mp3"]) == "parent"
    assert detect_variant(["other.mp3"]) is None


def test_recording_filter_scopes_to_identity() -> None:
    kids = recording_filter(ProgramIdentity("spookyland", "32", "kids"))
    parent = recording_filter(ProgramIdentity("spookyland", "32", "parent"))

    assert kids(kids_file(1, 1))
    assert kids(kids_file(1, 1).replace(".mp3", ".webm"))
    assert kids(f"https://x.test/en/{kids_file(1, 1)}")
    assert not kids(kids_file(1, 1, lmid="33"))
    assert not kids(kids_file(1, 1, world="shopping-spree"))
    assert not kids("parent_abc-world_spookyland-lmid_32-question_1-tm_1.mp3")

    assert parent("parent_abc-world_spookyland-lmid_32-question_1-tm_1.mp3")
    assert not parent(kids_file(1, 1))


def test_files_used_lists_basenames_in_plan_order(identity: ProgramIdentity) -> None:
    plan = build_segment_plan([_rec(kids_file(1, 1))], identity, ASSETS)
    assert files_used(plan) == [
        "intro-jingle.mp3",
        "spookyland-intro-educators.mp3",
        "spookyland-QID1.mp3",
        kids_file(1, 1),
        "spookyland-background.mp3",
        "outro-jingle.mp3",
        "spookyland-outro-educators.mp3",
    ]


def test_parse_segments_accepts_wire_plan() -> None:
    plan = parse_segments(
        [
            {"type": "single", "url": "https://x.test/a.mp3"},
            {"type": "silence", "duration_s": 2},
            {
                "type": "combine_with_background",
                "answerUrls": ["https://x.test/r1.mp3"],
                "backgroundUrl": "https://x.test/bg.mp3",
                "questionId": 4,
            },
        ]
    )
    assert plan.segments[0] == SingleSegment("https://x.test/a.mp3")
    assert plan.segments[1] == SilenceSegment(2.0)
    assert plan.segments[2] == CombineWithBackgroundSegment(
        answer_urls=("https://x.test/r1.mp3",),
        background_url="https://x.test/bg.mp3",
        question_id=4,
    )
    assert plan.question_ids == [4]


@pytest.mark.parametrize(
    "raw",
    [
        [{"type": "mystery"}],
        [{"type": "single"}],
        [{"type": "combine_with_background", "answer_urls": [], "background_url": "x"}],
        [{"type": "silence", "duration_s": 0}],
        [{"type": "silence", "duration_s": "abc"}],
        ["not-an-object"],
        "not-a-list",
    ],
)
def test_parse_segments_rejects_invalid_input(raw) -> None:
    with pytest.raises(ConfigurationError):
        parse_segments(raw)


def test_parse_segments_empty_is_no_input() -> None:
    with pytest.raises(NoInputError):
        parse_segments([])
