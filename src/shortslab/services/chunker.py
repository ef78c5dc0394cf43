from __future__ import annotations


def chunk_caption_text(
    text: str,
    max_words: int | None,
    max_chars: int | None,
) -> list[str]:
    """
    Greedily split `text` into caption chunks.

    A new chunk starts before a word that would push the current chunk
    past `max_words` words or past `max_chars` characters (words joined
    by single spaces). A limit of None or <= 0 is ignored. Words are
    never split, so a single over-long word becomes its own chunk.
    """
    words = text.split()
    if not words:
        return []
    word_limit = max_words if max_words and max_words > 0 else None
    char_limit = max_chars if max_chars and max_chars > 0 else None

    chunks: list[str] = []
    current: list[str] = []
    current_len = 0
    for word in words:
        next_len = current_len + (1 if current else 0) + len(word)
        too_many = word_limit is not None and len(current) >= word_limit
        too_long = char_limit is not None and next_len > char_limit
        if current and (too_many or too_long):
            chunks.append(" ".join(current))
            current = [word]
            current_len = len(word)
        else:
            current.append(word)
            current_len = next_len
    if current:
        chunks.append(" ".join(current))
    return chunks
