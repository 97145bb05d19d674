"""Query string parsing for ``params["query"]``."""

from collections.abc import Iterator, Mapping
from typing import Any
from urllib.parse import parse_qs


class QueryParams(Mapping[str, str]):
    """A parsed query string.

    Indexing gives the first value of a key; ``to_dict()`` keeps every
    value. Blank values (``?q=``) are kept as empty strings.
    """

    __slots__ = ("_values",)

    def __init__(self, query_string: bytes = b"") -> None:
        self._values: dict[str, list[str]] = parse_qs(
            query_string.decode("latin-1"), keep_blank_values=True
        )

    def __getitem__(self, key: str) -> str:
        return self._values[key][0]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"QueryParams({self.to_dict()!r})"

    def to_dict(self) -> dict[str, Any]:
        """Plain dict handed to services.

        A key given once maps to its string, a repeated key to the list
        of its values in order.
        """
        return {key: values[0] if len(values) == 1 else list(values) for key, values in self._values.items()}
