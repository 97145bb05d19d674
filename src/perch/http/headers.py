"""Request headers with case-insensitive lookup and ``Accept`` checks."""

from collections.abc import Iterable, Iterator, Mapping


class Headers(Mapping[str, str]):
    """Headers of one request, keyed by lowercased name.

    Indexing gives the first value sent for a name; ``get_all`` gives
    every value in the order received.
    """

    __slots__ = ("_values",)

    def __init__(self, raw: Iterable[tuple[bytes, bytes]] = ()) -> None:
        values: dict[str, list[str]] = {}
        for name, value in raw:
            values.setdefault(name.decode("latin-1").lower(), []).append(value.decode("latin-1"))
        self._values = values

    def __getitem__(self, key: str) -> str:
        return self._values[key.lower()][0]

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.lower() in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"Headers({ {name: values[0] for name, values in self._values.items()}!r})"

    def get_all(self, key: str) -> list[str]:
        return list(self._values.get(key.lower(), ()))

    def accepts(self, media_type: str) -> bool:
        """Whether the ``Accept`` header admits *media_type*.

        No ``Accept`` header admits everything. ``*/*`` and ``type/*``
        match; entries with ``q=0`` are refusals.
        """
        values = self.get_all("accept")
        if not values:
            return True
        wanted = {"*/*", media_type.split("/", 1)[0] + "/*", media_type}
        for value in values:
            for entry in value.split(","):
                kind, *options = (part.strip() for part in entry.split(";"))
                refused = any(opt.replace(" ", "") in ("q=0", "q=0.0", "q=0.00", "q=0.000") for opt in options)
                if kind in wanted and not refused:
                    return True
        return False
