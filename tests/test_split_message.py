from synapsebot.channels.telegram import rendered_length
from synapsebot.channels.utils import TELEGRAM_MESSAGE_LIMIT, split_message


def test_short_text_is_a_single_chunk() -> None:
    assert split_message("hello") == ["hello"]


def test_text_without_whitespace_is_hard_cut() -> None:
    chunks = split_message("x" * 9000)
    assert [len(chunk) for chunk in chunks] == [4096, 4096, 808]


def test_cut_happens_at_last_whitespace() -> None:
    text = "a" * 4000 + " " + "b" * 200
    assert split_message(text) == ["a" * 4000, "b" * 200]


def test_every_chunk_fits_and_words_survive() -> None:
    words = [f"w{idx}" for idx in range(3000)]
    text = " ".join(words)
    chunks = split_message(text, TELEGRAM_MESSAGE_LIMIT)
    assert len(chunks) > 1
    assert all(len(chunk) <= TELEGRAM_MESSAGE_LIMIT for chunk in chunks)
    assert " ".join(chunks).split() == words


def test_chunks_rejoin_with_their_original_whitespace() -> None:
    text = ("lorem ipsum dolor\nsit amet, " * 400)[:9000]
    chunks = split_message(text)

    assert len(text) == 9000
    assert all(len(chunk) <= TELEGRAM_MESSAGE_LIMIT for chunk in chunks)
    rebuilt = chunks[0]
    for chunk in chunks[1:]:
        separator = text[len(rebuilt)]
        assert separator.isspace()
        rebuilt += separator + chunk
    assert rebuilt == text


def test_chunks_fit_after_markup_rendering() -> None:
    text = ("Version 1.2.3 - see example.com (beta)! " * 300).strip()
    assert max(rendered_length(chunk) for chunk in split_message(text)) > TELEGRAM_MESSAGE_LIMIT

    chunks = split_message(text, measure=rendered_length)

    assert all(rendered_length(chunk) <= TELEGRAM_MESSAGE_LIMIT for chunk in chunks)
    assert " ".join(chunks).split() == text.split()


def test_measure_without_whitespace_still_hard_cuts() -> None:
    chunks = split_message("x" * 100, 10, measure=lambda chunk: 2 * len(chunk))
    assert chunks == ["x" * 5] * 20
