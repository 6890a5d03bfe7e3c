from __future__ import annotations

from dataclasses import dataclass

from .transform import IDENTITY, Matrix44, compose_nested


@dataclass(frozen=True)
class ResolutionContext:
    """State threaded through recursive block resolution.

    Values are never mutated: ``enter_block`` hands a new context to the
    children, and the caller keeps using its own.
    """

    transform: Matrix44 = IDENTITY
    inherited_color: int | None = None
    active_blocks: frozenset[str] = frozenset()
    depth: int = 0

    def enter_block(
        self,
        name: str,
        instance_transform: Matrix44,
        inherited_color: int | None,
    ) -> "ResolutionContext":
        return ResolutionContext(
            transform=compose_nested(self.transform, instance_transform),
            inherited_color=inherited_color,
            active_blocks=self.active_blocks | {block_key(name)},
            depth=self.depth + 1,
        )

    def is_expanding(self, name: str) -> bool:
        return block_key(name) in self.active_blocks


def root_context(transform: Matrix44 = IDENTITY) -> ResolutionContext:
    return ResolutionContext(transform=transform)


def block_key(name: str) -> str:
    return name.upper()
