"""Identity directory: method/type handles to descriptors, and display-name formatting."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Union

ELLIPSIS = "..."
MIN_NAME_WIDTH = 10


def identity_token(identity: int) -> str:
    """Display token used when an identity has no descriptor, e.g. 0x7F3A."""
    if identity < 0:
        return f"-0x{-identity:X}"
    return f"0x{identity:X}"


def split_qualified(name: str) -> list[str]:
    """Split a dotted name into segments, ignoring dots nested inside <>, [] or ()."""
    segments = []
    depth = 0
    current = []
    for ch in name:
        if ch in "<[(":
            depth += 1
        elif ch in ">])" and depth > 0:
            depth -= 1
        if ch == "." and depth == 0:
            segments.append("".join(current))
            current = []
            continue
        current.append(ch)
    segments.append("".join(current))
    return segments


def elide_name(segments: list[str], width: int) -> str:
    """
    Shorten a qualified name to fit within width by eliding leading qualifiers.

    The innermost segment is always kept; leading segments that do not fit are
    replaced by a single ellipsis. When the innermost segment alone is too wide,
    its right-most characters are kept behind the ellipsis.

    Args:
        segments: Name segments, outermost first
        width: Maximum label width

    Returns:
        The label
    """
    full = ".".join(segments)
    if len(full) <= width:
        return full

    leaf = segments[-1]
    budget = width - len(ELLIPSIS)
    if len(leaf) > budget:
        keep = max(budget, 1)
        return ELLIPSIS + leaf[len(leaf) - keep:]

    label = leaf
    for segment in reversed(segments[:-1]):
        candidate = f"{segment}.{label}"
        if len(candidate) > budget:
            break
        label = candidate
    return ELLIPSIS + label


@dataclass(frozen=True)
class MethodDescriptor:
    namespace: str
    name: str
    signature: str = ""

    def _split_signature(self) -> tuple[str, str]:
        param_start = self.signature.find("(")
        if param_start <= 0:
            return "", ""
        return self.signature[:param_start].strip() + " ", self.signature[param_start:]

    @property
    def qualified_name(self) -> str:
        if not self.namespace:
            return self.name
        return f"{self.namespace}.{self.name}"

    def full_name(self, include_signature: bool = False) -> str:
        if not include_signature:
            return self.qualified_name
        return_type, params = self._split_signature()
        return f"{return_type}{self.qualified_name}{params}"

    def label(self, width: int, include_signature: bool = False) -> str:
        """Bounded-width display label; qualifiers are elided first."""
        full = self.full_name(include_signature)
        if len(full) <= width:
            return full

        return_type, params = self._split_signature() if include_signature else ("", "")
        if len(return_type) > width // 2:
            return_type = ELLIPSIS + " "
        remaining = max(width - len(return_type), 0)

        segments = split_qualified(self.namespace) if self.namespace else []
        segments.append(self.name + params)
        return return_type + elide_name(segments, remaining)

    def same_entity(self, other: object) -> bool:
        return (
            isinstance(other, MethodDescriptor)
            and self.namespace == other.namespace
            and self.name == other.name
            and self.signature == other.signature
        )


@dataclass(frozen=True)
class TypeDescriptor:
    class_id: int
    class_name: str

    def full_name(self, include_signature: bool = False) -> str:
        return self.class_name

    def label(self, width: int, include_signature: bool = False) -> str:
        return elide_name(split_qualified(self.class_name), width)

    def same_entity(self, other: object) -> bool:
        return (
            isinstance(other, TypeDescriptor)
            and self.class_id == other.class_id
            and self.class_name == other.class_name
        )


Descriptor = Union[MethodDescriptor, TypeDescriptor]


class IdentityDirectory:
    """
    Mapping from identity to descriptor for one trace file.

    Duplicate definitions of an identity refer to the same logical entity, so the
    first definition is kept and later ones are ignored.
    """

    def __init__(self, entries: dict[int, Descriptor] | None = None):
        self._entries: dict[int, Descriptor] = dict(entries or {})

    def define(self, identity: int, descriptor: Descriptor) -> bool:
        """Insert descriptor if identity is unknown. Returns True when inserted."""
        if identity in self._entries:
            return False
        self._entries[identity] = descriptor
        return True

    def resolve(self, identity: int) -> Descriptor | None:
        return self._entries.get(identity)

    def items(self) -> Iterator[tuple[int, Descriptor]]:
        return iter(self._entries.items())

    def copy(self) -> "IdentityDirectory":
        return IdentityDirectory(self._entries)

    def __contains__(self, identity: object) -> bool:
        return identity in self._entries

    def __len__(self) -> int:
        return len(self._entries)


class NameResolver:
    """Resolves identities to full names (for filtering) and bounded labels (for display)."""

    def __init__(self, directory: IdentityDirectory, width: int = 70, include_signature: bool = False):
        self.directory = directory
        self.width = max(width, MIN_NAME_WIDTH)
        self.include_signature = include_signature

    def full_name(self, identity: int) -> str:
        descriptor = self.directory.resolve(identity)
        if descriptor is None:
            return identity_token(identity)
        return descriptor.full_name(self.include_signature)

    def display_name(self, identity: int) -> str:
        descriptor = self.directory.resolve(identity)
        if descriptor is None:
            return identity_token(identity)
        return descriptor.label(self.width, self.include_signature)
