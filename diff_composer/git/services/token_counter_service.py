"""Token estimation for diff text."""

from diff_composer.git.domain.value_objects import FileDiff

CHARS_PER_TOKEN = 4


class TokenCounter:
    """Character-based token estimate (four characters per token)."""

    def __init__(self, chars_per_token: int = CHARS_PER_TOKEN) -> None:
        if chars_per_token <= 0:
            raise ValueError("chars_per_token must be positive")
        self._chars_per_token = chars_per_token

    def count(self, text: str) -> int:
        return len(text) // self._chars_per_token

    def count_file(self, file_diff: FileDiff) -> int:
        return self.count(file_diff.header) + self.count(file_diff.content)
