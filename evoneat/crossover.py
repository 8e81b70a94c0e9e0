"""Two-parent, fitness-biased crossover of encoded substrates."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from random import Random

from .errors import ConfigError, VariationError
from .genes import ConnectionGene, NodeGene
from .genome import Comparison, Genome
from .substrate import Substrate


@dataclass(frozen=True, slots=True)
class CrosserConfig:
    """Configuration controlling crossover behaviour."""

    enable_probability: float = 0.2
    disable_equal_parent_check: bool = False
    comparison: Comparison = Comparison.FITNESS

    def __post_init__(self) -> None:
        if not 0.0 <= self.enable_probability <= 1.0:
            msg = "enable_probability must be in [0, 1]."
            raise ConfigError(msg)
        object.__setattr__(self, "comparison", Comparison.coerce(self.comparison))


@dataclass(frozen=True, slots=True)
class Crosser:
    """Produces one child genome from one or two parents."""

    config: CrosserConfig = CrosserConfig()

    def cross(self, parents: Sequence[Genome], rng: Random) -> Genome:
        """Return a child; its id is left at 0 for the caller to assign."""
        if not parents:
            msg = "Crossover requires at least one parent."
            raise VariationError(msg)
        if len(parents) > 2:
            msg = f"Crossover supports at most two parents, got {len(parents)}."
            raise VariationError(msg)
        if len(parents) == 1:
            parent = parents[0]
            return Genome(id=0, encoded=parent.encoded.copy(), traits=list(parent.traits))

        first, second = parents
        order = self.config.comparison.compare(first, second)
        if order < 0:
            first, second = second, first
        same = order == 0 and not self.config.disable_equal_parent_check

        nodes: list[NodeGene] = _merge(
            first.encoded.nodes,
            second.encoded.nodes,
            key=lambda node: node.position,
            same=same,
            rng=rng,
        )
        conns: list[ConnectionGene] = _merge(
            first.encoded.conns,
            second.encoded.conns,
            key=lambda conn: conn.key,
            same=same,
            rng=rng,
            both_enabled=True,
        )
        for index, conn in enumerate(conns):
            if not conn.enabled and rng.random() < self.config.enable_probability:
                conns[index] = conn.copy(enabled=True)

        traits = [
            trait if index >= len(second.traits) or rng.random() < 0.5 else second.traits[index]
            for index, trait in enumerate(first.traits)
        ]
        return Genome(id=0, encoded=Substrate.build(nodes, conns), traits=traits)


def _merge(left, right, *, key, same: bool, rng: Random, both_enabled: bool = False):
    """Walk two sorted gene sequences, keeping all of ``left`` and ``right`` only when ``same``."""
    merged = []
    index_left = 0
    index_right = 0
    while index_left < len(left) or index_right < len(right):
        if index_right >= len(right):
            merged.append(left[index_left])
            index_left += 1
            continue
        if index_left >= len(left):
            if same:
                merged.append(right[index_right])
            index_right += 1
            continue
        gene_left = left[index_left]
        gene_right = right[index_right]
        key_left, key_right = key(gene_left), key(gene_right)
        if key_left == key_right:
            picked = gene_left if rng.random() < 0.5 else gene_right
            if both_enabled and picked.enabled and not (gene_left.enabled and gene_right.enabled):
                picked = picked.copy(enabled=False)
            merged.append(picked)
            index_left += 1
            index_right += 1
        elif key_left < key_right:
            merged.append(gene_left)
            index_left += 1
        else:
            if same:
                merged.append(gene_right)
            index_right += 1
    return merged


__all__ = ["Crosser", "CrosserConfig"]
