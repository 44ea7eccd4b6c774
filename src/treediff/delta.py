import dataclasses
import typing

from treediff.dates import DatePath, Token, collect_date_paths, normalize_dates

Path = tuple[Token, ...]


def _normalize_path(path: typing.Iterable[Token] | None) -> Path | None:
    # The root is always "no path", never an empty one.
    if not path:
        return None
    return tuple(path)


def _markers(*sides: tuple[str, typing.Any]) -> list[DatePath] | None:
    paths: list[DatePath] = []
    for side, value in sides:
        paths.extend(collect_date_paths(value, (side,)))
    return paths or None


@dataclasses.dataclass
class Edit:
    """The value at `path` exists on both sides and differs."""

    kind: typing.ClassVar[typing.Literal["E"]] = "E"

    path: Path | None
    lhs: typing.Any
    rhs: typing.Any
    dates: list[DatePath] | None = None

    def __post_init__(self):
        self.path = _normalize_path(self.path)
        if self.dates is None:
            self.dates = _markers(("lhs", self.lhs), ("rhs", self.rhs))
        else:
            self.dates = normalize_dates(self.dates)


@dataclasses.dataclass
class Added:
    """The value at `path` exists only on the right-hand side."""

    kind: typing.ClassVar[typing.Literal["N"]] = "N"

    path: Path | None
    rhs: typing.Any
    dates: list[DatePath] | None = None

    def __post_init__(self):
        self.path = _normalize_path(self.path)
        if self.dates is None:
            self.dates = _markers(("rhs", self.rhs))
        else:
            self.dates = normalize_dates(self.dates)


@dataclasses.dataclass
class Removed:
    """The value at `path` exists only on the left-hand side."""

    kind: typing.ClassVar[typing.Literal["D"]] = "D"

    path: Path | None
    lhs: typing.Any
    dates: list[DatePath] | None = None

    def __post_init__(self):
        self.path = _normalize_path(self.path)
        if self.dates is None:
            self.dates = _markers(("lhs", self.lhs))
        else:
            self.dates = normalize_dates(self.dates)


@dataclasses.dataclass
class Inserted:
    kind: typing.ClassVar[typing.Literal["N"]] = "N"
    side: typing.ClassVar[str] = "rhs"

    rhs: typing.Any

    @property
    def value(self) -> typing.Any:
        return self.rhs

    def date_paths(self) -> list[DatePath]:
        return collect_date_paths(self.rhs, ("rhs",))


@dataclasses.dataclass
class Deleted:
    kind: typing.ClassVar[typing.Literal["D"]] = "D"
    side: typing.ClassVar[str] = "lhs"

    lhs: typing.Any

    @property
    def value(self) -> typing.Any:
        return self.lhs

    def date_paths(self) -> list[DatePath]:
        return collect_date_paths(self.lhs, ("lhs",))


ArrayItem = Inserted | Deleted


@dataclasses.dataclass
class ArrayChange:
    """
    The sequence at `path` gained (`Inserted`) or lost (`Deleted`) the
    element at `index`.

    Items never carry markers of their own: the item's timestamp paths are
    hoisted onto this record once, prefixed with ``"item"``.
    """

    kind: typing.ClassVar[typing.Literal["A"]] = "A"

    path: Path | None
    index: int
    item: ArrayItem
    dates: list[DatePath] | None = None

    def __post_init__(self):
        self.path = _normalize_path(self.path)
        if self.dates is None:
            if isinstance(self.item, (Inserted, Deleted)):
                self.dates = normalize_dates(
                    [("item", *p) for p in self.item.date_paths()]
                )
        else:
            self.dates = normalize_dates(self.dates)


Delta = Edit | Added | Removed | ArrayChange

RECORD_TYPES: dict[str, type] = {
    Edit.kind: Edit,
    Added.kind: Added,
    Removed.kind: Removed,
    ArrayChange.kind: ArrayChange,
}

ITEM_TYPES: dict[str, type] = {
    Inserted.kind: Inserted,
    Deleted.kind: Deleted,
}
