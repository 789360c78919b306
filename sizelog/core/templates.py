"""Template engine for log line headers."""

from collections.abc import Callable, Mapping

DEFAULT_HEADER = (
    '{"time":"${time_rfc3339}","level":"${level}","prefix":"${prefix}",'
    '"file":"${short_file}","line":"${line}"}'
)


class HeaderTemplate:
    """A header format string with ``${tag}`` placeholders, compiled once.

    Execution appends literal text and resolved tags to a caller-owned
    ``bytearray`` so the hot path does not build intermediate strings.
    """

    # Tags understood by StructuredLogger
    VALID_TAGS = frozenset(
        {"time_rfc3339", "level", "prefix", "short_file", "long_file", "line"}
    )

    def __init__(self, source: str, start: str = "${", end: str = "}"):
        if not start or not end:
            raise ValueError("Template delimiters must not be empty")
        self.source = source
        self.start = start
        self.end = end
        self._segments = self._compile(source)

    def __repr__(self) -> str:
        return f"HeaderTemplate({self.source!r})"

    @property
    def tags(self) -> list[str]:
        """Tags referenced by the template, in order of appearance."""
        return [value for is_tag, value in self._segments if is_tag]

    def _compile(self, source: str) -> list[tuple[bool, str]]:
        """Split the source into (is_tag, text) segments."""
        segments: list[tuple[bool, str]] = []
        pos = 0

        while True:
            begin = source.find(self.start, pos)
            if begin == -1:
                break
            close = source.find(self.end, begin + len(self.start))
            if close == -1:
                # Unterminated placeholder stays literal
                break
            if begin > pos:
                segments.append((False, source[pos:begin]))
            segments.append((True, source[begin + len(self.start) : close]))
            pos = close + len(self.end)

        if pos < len(source):
            segments.append((False, source[pos:]))

        return segments

    def execute(self, buf: bytearray, tag_func: Callable[[str], str]) -> int:
        """Append the rendered template to ``buf``; return bytes appended."""
        before = len(buf)
        for is_tag, value in self._segments:
            if is_tag:
                value = tag_func(value)
            buf += value.encode("utf-8")
        return len(buf) - before

    def render(self, values: Mapping[str, str]) -> str:
        """Render with a plain mapping; missing tags render empty."""
        buf = bytearray()
        self.execute(buf, lambda tag: values.get(tag, ""))
        return buf.decode("utf-8")

    def validate(self) -> tuple[bool, list[str]]:
        """Validate the template source."""
        errors = []

        if self.source.count(self.start) != len(self.tags):
            errors.append(f"Template has an unterminated {self.start!r}")

        for tag in self.tags:
            if tag not in self.VALID_TAGS:
                errors.append(f"Unknown tag: {self.start}{tag}{self.end}")

        return len(errors) == 0, errors
