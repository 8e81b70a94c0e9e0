from __future__ import annotations

from pathlib import Path

import pytest
from evoneat.activations import Activation
from evoneat.config import (
    Configurer,
    build_experiment,
    build_mutators,
    inspector,
    phased_config,
    populator_config,
    seeder_config,
    selector_config,
)
from evoneat.errors import ConfigError
from evoneat.evaluator import SerialSearcher
from evoneat.events import with_iterations
from evoneat.genes import NodeGene, NodeType, Position
from evoneat.genome import Comparison, Phenome, Result
from evoneat.hyperneat import ConstantThreshold, HyperNEATSeeder, HyperNEATTranscriber, LinkExpressionOutput
from evoneat.mutators import (
    ActivationMutator,
    BiasMutator,
    Complexify,
    Phased,
    Pruning,
    Simplify,
    TraitMutator,
    WeightMutator,
)
from evoneat.population import NEATSeeder
from evoneat.reproduction import Selector
from evoneat.substrate import Substrate
from evoneat.transcriber import Transcriber


class ConstantEvaluator:
    def evaluate(self, phenome: Phenome) -> Result:
        outputs = phenome.network.activate([[0.0, 1.0]])
        return Result(id=phenome.id, fitness=float(outputs[0, 0]))


def _options(**extra: object) -> dict[str, object]:
    neat: dict[str, object] = {
        "seeder": {"num-inputs": 2, "num-outputs": 1},
        "populator": {"population-size": 8},
    }
    neat.update(extra)
    return {"neat": neat}


def test_lookup_falls_back_from_specific_to_general_namespaces() -> None:
    configurer = Configurer(
        {
            "max-weight": 9.0,
            "neat": {
                "max-weight": 4.0,
                "mutator": {"weight": {"max-weight": 2.0}},
            },
        }
    )

    assert configurer.get_float("neat|mutator|weight|max-weight") == 2.0
    assert configurer.get_float("neat|mutator|complexify|max-weight") == 4.0
    assert configurer.get_float("hyperneat|max-weight") == 9.0
    assert configurer.get_float("neat|missing", 1.5) == 1.5


def test_option_names_ignore_case_and_separators() -> None:
    configurer = Configurer({"NEAT": {"Seeder": {"MaxWeight": 3, "num_inputs": "4"}}})

    assert configurer.get_float("neat|seeder|max-weight") == 3.0
    assert configurer.get_int("neat|seeder|num-inputs") == 4


def test_typed_getters_convert_and_report_bad_values() -> None:
    configurer = Configurer(
        {
            "flag": "yes",
            "activation": "SteepenedSigmoid",
            "activations": "tanh, sin gauss",
            "comparison": "Novelty",
            "count": 2.5,
        }
    )

    assert configurer.get_bool("flag") is True
    assert configurer.get_activation("activation") is Activation.STEEPENED_SIGMOID
    assert configurer.get_activations("activations") == (
        Activation.TANH,
        Activation.SIN,
        Activation.GAUSS,
    )
    assert configurer.get_comparison("comparison") is Comparison.NOVELTY
    with pytest.raises(ConfigError):
        configurer.get_int("count")
    with pytest.raises(ConfigError):
        configurer.get_activation("flag")


def test_configurer_reads_yaml(tmp_path: Path) -> None:
    path = tmp_path / "neat.yml"
    path.write_text(
        "neat:\n"
        "  seeder:\n"
        "    num-inputs: 3\n"
        "    num-outputs: 2\n"
        "    output-activation: tanh\n"
        "  populator:\n"
        "    population-size: 12\n"
        "  selector:\n"
        "    elitism: false\n",
        encoding="utf-8",
    )
    configurer = Configurer.from_yaml(path)

    seeder = seeder_config(configurer)
    assert (seeder.num_inputs, seeder.num_outputs) == (3, 2)
    assert seeder.output_activation is Activation.TANH
    assert populator_config(configurer).population_size == 12
    selector = selector_config(configurer)
    assert selector.population_size == 12
    assert selector.elitism is False

    bad = tmp_path / "bad.yml"
    bad.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        Configurer.from_yaml(bad)


def test_missing_required_option_is_reported() -> None:
    configurer = Configurer({"neat": {"seeder": {"num-outputs": 1}}})

    with pytest.raises(ConfigError, match="num-inputs"):
        seeder_config(configurer)
    with pytest.raises(ConfigError, match="population-size"):
        populator_config(configurer)


def test_invalid_values_surface_as_config_errors() -> None:
    configurer = Configurer({"neat": {"seeder": {"num-inputs": 0, "num-outputs": 1}}})

    with pytest.raises(ConfigError):
        seeder_config(configurer)


def test_default_mutators_put_structural_mutators_first() -> None:
    configurer = Configurer(_options())
    selector = Selector(selector_config(configurer))

    pipeline, phased = build_mutators(configurer, selector)

    assert phased is None
    assert [type(mutator) for mutator in pipeline.mutators] == [
        Complexify,
        Simplify,
        WeightMutator,
        BiasMutator,
        TraitMutator,
    ]


def test_configured_mutators_respect_probabilities() -> None:
    configurer = Configurer(
        _options(
            mutator={
                "simplify": {"del-node-probability": 0, "del-conn-probability": 0},
                "pruning": {"disable-probability": 0.5},
                "trait": {"mutate-trait-probability": 0},
                "activation": {"activations": ["tanh", "relu"]},
            }
        )
    )
    selector = Selector(selector_config(configurer))

    neat_pipeline, _ = build_mutators(configurer, selector)
    hyperneat_pipeline, _ = build_mutators(configurer, selector, hyperneat=True)

    assert [type(mutator) for mutator in neat_pipeline.mutators] == [
        Complexify,
        Pruning,
        WeightMutator,
        BiasMutator,
    ]
    assert isinstance(hyperneat_pipeline.mutators[-1], ActivationMutator)
    assert hyperneat_pipeline.mutators[-1].config.activations == (Activation.TANH, Activation.RELU)


def test_phased_mutator_is_built_and_subscribed() -> None:
    configurer = Configurer(_options(mutator={"phased": {"phase-threshold": 5, "hold-phase": 2}}))

    settings = phased_config(configurer)
    experiment = build_experiment(configurer, ConstantEvaluator(), searcher=SerialSearcher(), seed=0)

    assert settings is not None
    assert settings.hold_phase == 2
    assert isinstance(experiment.mutators.mutators[0], Phased)
    assert experiment.mutators.mutators[0].toggle is experiment.selector
    assert len(experiment.subscriptions) == 1
    assert phased_config(Configurer(_options())) is None


def test_build_neat_experiment_runs() -> None:
    configurer = Configurer(_options(speciator={"target-species": 2}))
    experiment = build_experiment(configurer, ConstantEvaluator(), searcher=SerialSearcher(), seed=3)
    token, subscription = with_iterations(2)
    experiment.subscribe(subscription)

    population = experiment.run(token)

    assert isinstance(experiment.seeder, NEATSeeder)
    assert isinstance(experiment.transcriber, Transcriber)
    assert experiment.speciator.config.target_species == 2
    assert population.generation == 1
    assert len(population.genomes) == 8


def _template() -> Substrate:
    return Substrate.build(
        [
            NodeGene(Position(0.0, 0.0), NodeType.INPUT),
            NodeGene(Position(0.0, 1.0), NodeType.INPUT),
            NodeGene(Position(0.5, 0.5), NodeType.HIDDEN, Activation.TANH),
            NodeGene(Position(1.0, 0.5), NodeType.OUTPUT, Activation.SIGMOID),
        ]
    )


def test_build_hyperneat_experiment_runs() -> None:
    configurer = Configurer(
        {
            **_options(),
            "hyperneat": {"transcriber": {"weight-power": 2.0, "seed-locality-x": True}},
        }
    )
    experiment = build_experiment(
        configurer,
        ConstantEvaluator(),
        template=_template(),
        searcher=SerialSearcher(),
        seed=4,
    )
    token, subscription = with_iterations(2)
    experiment.subscribe(subscription)

    population = experiment.run(token)

    assert isinstance(experiment.seeder, HyperNEATSeeder)
    assert isinstance(experiment.transcriber, HyperNEATTranscriber)
    assert experiment.transcriber.config.weight_power == 2.0
    assert population.generation == 1
    assert all(len(genome.decoded.nodes) == 4 for genome in population.genomes)
    assert all(
        any(node.locked for node in genome.encoded.nodes) for genome in population.genomes
    )


def test_inspector_selection() -> None:
    assert isinstance(inspector(Configurer()), LinkExpressionOutput)
    chosen = inspector(
        Configurer({"hyperneat": {"transcriber": {"inspector": "threshold", "threshold": 0.3}}})
    )
    assert chosen == ConstantThreshold(0.3)
    with pytest.raises(ConfigError):
        inspector(Configurer({"hyperneat": {"transcriber": {"inspector": "magic"}}}))
