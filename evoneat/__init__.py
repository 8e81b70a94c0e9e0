"""NEAT and HyperNEAT neuroevolution of feed-forward networks."""

from __future__ import annotations

from .activations import Activation
from .config import Configurer, build_experiment
from .crossover import Crosser, CrosserConfig
from .errors import (
    CancelledError,
    ConfigError,
    EvaluationError,
    GenerationError,
    GenomeError,
    InvalidActivation,
    SearchError,
    StructuralError,
    VariationError,
)
from .evaluator import Evaluator, ParallelSearcher, SerialSearcher
from .events import (
    CancellationToken,
    Event,
    Subscription,
    with_iterations,
    with_solution,
)
from .experiment import Experiment, RandomSource, Updater, UpdaterConfig
from .genes import ConnectionGene, NodeGene, NodeType, Position, midpoint
from .genome import (
    MIN_FITNESS,
    Comparison,
    Genome,
    Phenome,
    Population,
    Result,
    Species,
    sort_and_rank,
)
from .hyperneat import (
    ConstantThreshold,
    HyperNEATSeeder,
    HyperNEATSeederConfig,
    HyperNEATTranscriber,
    HyperNEATTranscriberConfig,
    LinkExpressionOutput,
)
from .mutators import (
    ActivationConfig,
    ActivationMutator,
    BiasConfig,
    BiasMutator,
    Complexify,
    ComplexifyConfig,
    MutatorPipeline,
    Phased,
    PhasedConfig,
    Pruning,
    PruningConfig,
    Simplify,
    SimplifyConfig,
    TraitConfig,
    TraitMutator,
    WeightConfig,
    WeightMutator,
)
from .network import FeedForwardNetwork, Layer, Translator, translate
from .population import NEATSeeder, Populator, PopulatorConfig, SeederConfig
from .reporters import EventLogger, EventReporter
from .reproduction import Selection, Selector, SelectorConfig, allocate_offspring
from .species import (
    CompatibilityConfig,
    Speciator,
    SpeciatorConfig,
    compatibility_distance,
)
from .substrate import Substrate
from .transcriber import Transcriber

__all__ = [
    "Activation",
    "Position",
    "midpoint",
    "NodeType",
    "NodeGene",
    "ConnectionGene",
    "Substrate",
    "Genome",
    "Species",
    "Population",
    "Result",
    "Phenome",
    "Comparison",
    "MIN_FITNESS",
    "sort_and_rank",
    "CompatibilityConfig",
    "compatibility_distance",
    "Speciator",
    "SpeciatorConfig",
    "Crosser",
    "CrosserConfig",
    "Complexify",
    "ComplexifyConfig",
    "WeightMutator",
    "WeightConfig",
    "BiasMutator",
    "BiasConfig",
    "TraitMutator",
    "TraitConfig",
    "ActivationMutator",
    "ActivationConfig",
    "Simplify",
    "SimplifyConfig",
    "Pruning",
    "PruningConfig",
    "Phased",
    "PhasedConfig",
    "MutatorPipeline",
    "Selector",
    "SelectorConfig",
    "Selection",
    "allocate_offspring",
    "FeedForwardNetwork",
    "Layer",
    "Translator",
    "translate",
    "Transcriber",
    "HyperNEATTranscriber",
    "HyperNEATTranscriberConfig",
    "HyperNEATSeeder",
    "HyperNEATSeederConfig",
    "LinkExpressionOutput",
    "ConstantThreshold",
    "NEATSeeder",
    "SeederConfig",
    "Populator",
    "PopulatorConfig",
    "Evaluator",
    "SerialSearcher",
    "ParallelSearcher",
    "Event",
    "Subscription",
    "CancellationToken",
    "with_iterations",
    "with_solution",
    "Experiment",
    "RandomSource",
    "Updater",
    "UpdaterConfig",
    "Configurer",
    "build_experiment",
    "EventLogger",
    "EventReporter",
    "ConfigError",
    "StructuralError",
    "VariationError",
    "EvaluationError",
    "SearchError",
    "CancelledError",
    "InvalidActivation",
    "GenomeError",
    "GenerationError",
]
