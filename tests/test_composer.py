import pytest

from yt_story_mcp.services.composer import BEATS, compose, split_sentences

TRANSCRIPT = (
    "My cholesterol was a real problem for years. Do you want to know the secret? "
    "I stopped taking pills and started using a film on my tongue. "
    "A study showed 30% lower LDL in 12 weeks. "
    "Now I have energy and my life feels new. "
    "Join the challenge today, the link is in the bio."
)


def test_compose_is_deterministic() -> None:
    assert compose(TRANSCRIPT) == compose(TRANSCRIPT)


@pytest.mark.parametrize("text", ["", "   ", "Just one sentence.", TRANSCRIPT * 5])
def test_compose_always_returns_six_beats(text: str) -> None:
    bundle = compose(text)

    assert len(bundle.beats) == 6
    assert [beat.split(":", 1)[0] for beat in bundle.beats] == [
        "Hook", "Problem", "Solution", "Proof", "Transformation", "CTA",
    ]
    assert len(bundle.script.splitlines()) == 6


def test_empty_transcript_uses_placeholders() -> None:
    bundle = compose("")

    assert bundle.beats[0] == "Hook: A bold opening line adapted for Lipidz"
    assert bundle.beats[5] == "CTA: 21-day challenge | link in bio"
    assert bundle.script.splitlines()[2] == (
        "[06-10] Solution (Lipidz): Use Lipidz, the orally dissolving film applied on the tongue"
    )
    assert "(no transcript available)" in bundle.source_prompt


def test_beat_windows_cover_thirty_seconds() -> None:
    assert BEATS[0].start == 0
    assert BEATS[-1].end == 30
    for previous, current in zip(BEATS, BEATS[1:]):
        assert previous.end == current.start
    assert all(3 <= beat.end - beat.start <= 10 for beat in BEATS)

    tags = [line.split(" ", 1)[0] for line in compose(TRANSCRIPT).script.splitlines()]
    assert tags == ["[00-03]", "[03-06]", "[06-10]", "[10-18]", "[18-27]", "[27-30]"]


def test_sentences_are_assigned_by_relevance() -> None:
    bundle = compose(TRANSCRIPT)

    assert bundle.beats[0] == "Hook: Do you want to know the secret?"
    assert bundle.beats[1] == "Problem: My cholesterol was a real problem for years."
    assert bundle.beats[3] == "Proof: A study showed 30% lower LDL in 12 weeks."


def test_competitor_terms_are_substituted() -> None:
    bundle = compose("These capsules never worked for me. Supplements are a waste.")

    joined = "\n".join(bundle.beats)
    assert "capsules" not in joined.lower()
    assert "supplements" not in joined.lower()
    assert "These Lipidz never worked for me." in joined


def test_long_sentences_are_clipped_to_their_window() -> None:
    long_sentence = " ".join(f"word{i}" for i in range(40)) + "."

    bundle = compose(long_sentence)

    hook = bundle.beats[0].removeprefix("Hook: ")
    assert hook.endswith("...")
    assert len(hook.split(" ")) == BEATS[0].word_budget


def test_prompt_embeds_top_sentences_in_transcript_order() -> None:
    bundle = compose(TRANSCRIPT)

    highlights = [line[2:] for line in bundle.source_prompt.splitlines() if line.startswith("- ")]
    sentences = split_sentences(TRANSCRIPT)
    assert len(highlights) == 3
    positions = [sentences.index(sentence.replace("Lipidz", "pills")) for sentence in highlights]
    assert positions == sorted(positions)
    assert "Lipidz" in bundle.source_prompt


def test_product_name_is_inserted_literally() -> None:
    product = r"Lip\idz \1"

    bundle = compose("These pills never worked for me.", product=product)

    assert bundle.beats[0] == r"Hook: These Lip\idz \1 never worked for me."
