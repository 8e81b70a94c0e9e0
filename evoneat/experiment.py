"""Generational driver wiring selection, variation, decoding and evaluation."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from random import Random
from typing import Protocol

from .crossover import Crosser
from .errors import (
    CancelledError,
    ConfigError,
    GenerationError,
    GenomeError,
    StructuralError,
    VariationError,
)
from .evaluator import Evaluator, ParallelSearcher, Searcher
from .events import CancellationToken, Event, Subscription, publish
from .genome import MIN_FITNESS, Comparison, Genome, Phenome, Population, Result
from .mutators import MutatorPipeline
from .network import FeedForwardNetwork, Translator
from .population import Populator, Seeder
from .reporters import EventLogger, summarize
from .reproduction import Selector
from .species import Speciator
from .substrate import Substrate


class SubstrateTranscriber(Protocol):
    def transcribe(self, encoded: Substrate) -> Substrate: ...


class RandomSource:
    """Parent PRNG from which every component call draws its own generator."""

    def __init__(self, seed: int | None = None) -> None:
        self._parent = Random(seed)

    def spawn(self) -> Random:
        return Random(self._parent.getrandbits(64))


@dataclass(frozen=True, slots=True)
class UpdaterConfig:
    species_decay_rate: float = 0.0667
    comparison: Comparison = Comparison.FITNESS

    def __post_init__(self) -> None:
        if not 0.0 <= self.species_decay_rate <= 1.0:
            msg = "species_decay_rate must be in [0, 1]."
            raise ConfigError(msg)
        object.__setattr__(self, "comparison", Comparison.coerce(self.comparison))


@dataclass(frozen=True, slots=True)
class Updater:
    """Applies results to genomes and ages each species."""

    config: UpdaterConfig = UpdaterConfig()

    def update(self, population: Population, results: Iterable[Result]) -> None:
        by_id = {result.id: result for result in results}
        for genome in population.genomes:
            result = by_id.get(genome.id)
            if result is None or result.error is not None:
                genome.fitness, genome.novelty, genome.solved = MIN_FITNESS, 0.0, False
            else:
                genome.fitness, genome.novelty, genome.solved = (
                    result.fitness,
                    result.novelty,
                    result.solved,
                )

        for species in population.species:
            members = population.members(species.id)
            if not members:
                continue
            best_fitness = max(genome.fitness for genome in members)
            if best_fitness > species.best_fitness:
                species.best_fitness = best_fitness
                species.stagnation = 0
            else:
                species.stagnation += 1
            champion = max(members, key=self.config.comparison.sort_key)
            if champion.id != species.champion:
                species.champion = champion.id
                species.decay = 0.0
            else:
                species.decay = min(1.0, species.decay + self.config.species_decay_rate)


class Experiment:
    """Runs the generational loop until its cancellation token is set.

    Each generation selects parents, creates offspring by crossover and
    mutation, speciates, decodes and translates every genome, evaluates the
    resulting phenomes and updates fitness and species decay. Events are
    published to subscribed callbacks between those stages.
    """

    def __init__(
        self,
        *,
        seeder: Seeder,
        populator: Populator,
        selector: Selector,
        crosser: Crosser,
        mutators: MutatorPipeline,
        speciator: Speciator,
        transcriber: SubstrateTranscriber,
        evaluator: Evaluator,
        translator: Translator | None = None,
        searcher: Searcher | None = None,
        updater: Updater | None = None,
        seed: int | None = None,
        logger: EventLogger | None = None,
    ) -> None:
        self.seeder = seeder
        self.populator = populator
        self.selector = selector
        self.crosser = crosser
        self.mutators = mutators
        self.speciator = speciator
        self.transcriber = transcriber
        self.translator = translator or Translator()
        self.evaluator = evaluator
        self.searcher = searcher or ParallelSearcher()
        self.updater = updater or Updater()
        self.random = RandomSource(seed)
        self.logger = logger
        self.subscriptions: list[Subscription] = []
        self.last_errors: tuple[GenomeError, ...] = ()
        self.last_genome_id = 0
        self.last_species_id = 0

    def subscribe(self, *subscriptions: Subscription) -> None:
        self.subscriptions.extend(subscriptions)

    def run(
        self,
        token: CancellationToken,
        population: Population | None = None,
    ) -> Population:
        """Evolve until ``token`` is cancelled and return the last evaluated population."""
        if population is None:
            population = self.populator.populate(self.seeder, self.random.spawn())
        else:
            for genome in population.genomes:
                try:
                    genome.encoded.validate()
                except StructuralError as error:
                    raise GenomeError("validate", genome.id, error) from error
        self._init_ids(population)
        self._log(f"Experiment started: {summarize(population)}")
        publish(self.subscriptions, Event.STARTED, population)

        complete = population
        try:
            self._checkpoint(token)
            self.last_species_id = self.speciator.speciate(population, self.last_species_id)
            self._evaluate(population, token)
            complete = population
            while True:
                self._checkpoint(token)
                population = self._advance(population)
                publish(self.subscriptions, Event.ADVANCED, population)
                self._checkpoint(token)
                self._evaluate(population, token)
                complete = population
        except CancelledError:
            self._log(f"Experiment cancelled: {summarize(complete)}")

        publish(self.subscriptions, Event.COMPLETED, complete)
        return complete

    def _init_ids(self, population: Population) -> None:
        self.last_genome_id = max(
            [self.last_genome_id, *(genome.id for genome in population.genomes)]
        )
        self.last_species_id = max(
            [self.last_species_id, *(species.id for species in population.species)]
        )

    def _checkpoint(self, token: CancellationToken) -> None:
        if token.cancelled:
            msg = "Experiment cancelled."
            raise CancelledError(msg)

    def _advance(self, population: Population) -> Population:
        """Select, cross and mutate into the next generation, then speciate it."""
        if population.species and all(species.stagnant for species in population.species):
            self._log("All species stagnant; restarting", population.generation)
        selection = self.selector.select(population, self.random.spawn())
        genomes = [genome.copy() for genome in selection.continuing]
        errors: list[GenomeError] = []
        for parents in selection.parents:
            child = self._procreate(parents, errors)
            genomes.append(child)

        advanced = Population(
            generation=population.generation + 1,
            genomes=genomes,
            species=[species.copy() for species in population.species],
        )
        self.last_species_id = self.speciator.speciate(advanced, self.last_species_id)
        self.last_errors = tuple(errors)
        return advanced

    def _procreate(self, parents: Sequence[Genome], errors: list[GenomeError]) -> Genome:
        self.last_genome_id += 1
        try:
            child = self.crosser.cross(parents, self.random.spawn())
            child.id = self.last_genome_id
            self.mutators.mutate(child, self.random.spawn())
        except (StructuralError, VariationError) as error:
            errors.append(GenomeError("variation", self.last_genome_id, error))
            # fall back to an unmodified copy of the first parent
            child = Genome(
                id=self.last_genome_id,
                encoded=parents[0].encoded.copy(),
                traits=list(parents[0].traits),
            )
        return child

    def _evaluate(self, population: Population, token: CancellationToken) -> None:
        errors = list(self.last_errors)
        self.last_errors = ()
        phenomes: list[Phenome] = []
        for genome in population.genomes:
            network = self._decode(genome, errors)
            if network is not None:
                phenomes.append(Phenome(genome.id, tuple(genome.traits), network))
        if not phenomes:
            raise GenerationError(population.generation, errors)
        publish(self.subscriptions, Event.DECODED, population)
        self._checkpoint(token)

        results = self.searcher.search(self.evaluator, phenomes)
        for result in results:
            if result.error is not None:
                self._log(result.error, population.generation)
        self.updater.update(population, results)

        if errors:
            self.last_errors = tuple(errors)
            self._log(str(GenerationError(population.generation, errors)), population.generation)
        self._log(f"Evaluated {summarize(population, self.updater.config.comparison)}")
        publish(self.subscriptions, Event.EVALUATED, population)

    def _decode(self, genome: Genome, errors: list[GenomeError]) -> FeedForwardNetwork | None:
        stage = "transcribe"
        try:
            genome.decoded = self.transcriber.transcribe(genome.encoded)
            stage = "translate"
            return self.translator.translate(genome.decoded)
        except StructuralError as error:
            errors.append(GenomeError(stage, genome.id, error))
            if stage == "transcribe":
                genome.decoded = Substrate()
            return None

    def _log(self, message: str, generation: int | None = None) -> None:
        if self.logger is not None:
            self.logger.log(message, generation=generation)


__all__ = [
    "Experiment",
    "RandomSource",
    "SubstrateTranscriber",
    "Updater",
    "UpdaterConfig",
]
