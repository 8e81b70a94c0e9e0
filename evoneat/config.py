"""Configuration loading and experiment assembly from namespaced options."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

import yaml

from .activations import Activation
from .crossover import Crosser, CrosserConfig
from .errors import ConfigError
from .evaluator import Evaluator, Searcher
from .events import Event, Subscription
from .experiment import Experiment, Updater, UpdaterConfig
from .genome import Comparison
from .hyperneat import (
    ConstantThreshold,
    HyperNEATSeeder,
    HyperNEATSeederConfig,
    HyperNEATTranscriber,
    HyperNEATTranscriberConfig,
    Inspector,
    LinkExpressionOutput,
)
from .mutators import (
    ActivationConfig,
    ActivationMutator,
    BiasConfig,
    BiasMutator,
    Complexify,
    ComplexifyConfig,
    Mutator,
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
from .population import NEATSeeder, PopulatorConfig, Populator, SeederConfig
from .reporters import EventLogger
from .reproduction import Selector, SelectorConfig
from .species import CompatibilityConfig, Speciator, SpeciatorConfig
from .substrate import Substrate
from .transcriber import Transcriber


def _normalise(name: str) -> str:
    return "".join(ch for ch in str(name).lower() if ch.isalnum())


def _load_yaml(path: Path) -> Mapping[str, Any]:
    with Path(path).open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, Mapping):
        msg = f"Expected mapping in YAML file: {path}"
        raise ConfigError(msg)
    return data


class Configurer:
    """Looks up ``a|b|c|key`` options from most to least specific namespace.

    ``neat|mutator|weight|max-weight`` is tried as ``neat.mutator.weight``,
    then ``neat.mutator``, then ``neat`` and finally at the top level. Names
    match regardless of case and of ``-``/``_`` separators, so
    ``max-weight``, ``max_weight`` and ``MaxWeight`` are the same option.
    """

    def __init__(self, data: Mapping[str, Any] | None = None) -> None:
        self.data: Mapping[str, Any] = data or {}

    @classmethod
    def from_yaml(cls, path: Path) -> Configurer:
        return cls(_load_yaml(path))

    def find(self, key: str) -> Any | None:
        *namespaces, name = key.split("|")
        for depth in range(len(namespaces), -1, -1):
            value = self._value(namespaces[:depth], name)
            if value is not None:
                return value
        return None

    def _value(self, namespaces: list[str], name: str) -> Any | None:
        level: Any = self.data
        for namespace in (*namespaces, name):
            if not isinstance(level, Mapping):
                return None
            wanted = _normalise(namespace)
            level = next(
                (value for label, value in level.items() if _normalise(label) == wanted),
                None,
            )
            if level is None:
                return None
        return level

    def _get(self, key: str, convert: Callable[[Any], Any], default: Any) -> Any:
        value = self.find(key)
        if value is None:
            return default
        try:
            return convert(value)
        except (TypeError, ValueError) as error:
            msg = f"Invalid value {value!r} for option {key!r}: {error}"
            raise ConfigError(msg) from error

    def get_float(self, key: str, default: float | None = None) -> float | None:
        return self._get(key, float, default)

    def get_int(self, key: str, default: int | None = None) -> int | None:
        return self._get(key, _to_int, default)

    def get_bool(self, key: str, default: bool | None = None) -> bool | None:
        return self._get(key, _to_bool, default)

    def get_str(self, key: str, default: str | None = None) -> str | None:
        return self._get(key, str, default)

    def get_activation(self, key: str, default: Activation | None = None) -> Activation | None:
        return self._get(key, _to_activation, default)

    def get_activations(
        self, key: str, default: tuple[Activation, ...] | None = None
    ) -> tuple[Activation, ...] | None:
        return self._get(key, _to_activations, default)

    def get_comparison(self, key: str, default: Comparison | None = None) -> Comparison | None:
        return self._get(key, Comparison.coerce, default)


def _to_int(value: Any) -> int:
    if isinstance(value, bool):
        msg = "expected an integer"
        raise TypeError(msg)
    number = float(value)
    if not number.is_integer():
        msg = "expected an integer"
        raise ValueError(msg)
    return int(number)


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str) and value.strip().lower() in ("true", "false", "yes", "no", "1", "0"):
        return value.strip().lower() in ("true", "yes", "1")
    msg = "expected a boolean"
    raise ValueError(msg)


def _to_activation(value: Any) -> Activation:
    try:
        return Activation.coerce(value)
    except LookupError as error:
        raise ValueError(str(error)) from error


def _to_activations(value: Any) -> tuple[Activation, ...]:
    if isinstance(value, str):
        value = [item for item in value.replace(",", " ").split() if item]
    return tuple(_to_activation(item) for item in value)


_GETTERS = {
    float: Configurer.get_float,
    int: Configurer.get_int,
    bool: Configurer.get_bool,
    str: Configurer.get_str,
    Activation: Configurer.get_activation,
    Comparison: Configurer.get_comparison,
    tuple: Configurer.get_activations,
}


def _options(
    configurer: Configurer,
    namespace: str,
    fields: Mapping[str, type],
    required: tuple[str, ...] = (),
) -> dict[str, Any]:
    """Read the named options under ``namespace`` into dataclass keyword arguments."""
    options: dict[str, Any] = {}
    for name, kind in fields.items():
        key = f"{namespace}|{name.replace('_', '-')}"
        value = _GETTERS[kind](configurer, key)
        if value is not None:
            options[name] = value
        elif name in required:
            msg = f"Missing required option {key!r}."
            raise ConfigError(msg)
    return options


def seeder_config(configurer: Configurer) -> SeederConfig:
    return SeederConfig(
        **_options(
            configurer,
            "neat|seeder",
            {
                "num_inputs": int,
                "num_outputs": int,
                "num_traits": int,
                "output_activation": Activation,
                "disconnect_rate": float,
            },
            required=("num_inputs", "num_outputs"),
        )
    )


def populator_config(configurer: Configurer) -> PopulatorConfig:
    options = _options(
        configurer,
        "neat|seeder",
        {"weight_power": float, "max_weight": float, "bias_power": float, "max_bias": float},
    )
    options.update(
        _options(configurer, "neat|populator", {"population_size": int}, ("population_size",))
    )
    return PopulatorConfig(**options)


def crosser_config(configurer: Configurer) -> CrosserConfig:
    return CrosserConfig(
        **_options(
            configurer,
            "neat|crosser",
            {
                "enable_probability": float,
                "disable_equal_parent_check": bool,
                "comparison": Comparison,
            },
        )
    )


def selector_config(configurer: Configurer) -> SelectorConfig:
    options = _options(
        configurer,
        "neat|selector",
        {
            "mutate_only_probability": float,
            "interspecies_mate_probability": float,
            "elitism": bool,
            "survival_rate": float,
            "comparison": Comparison,
        },
    )
    options.update(
        _options(configurer, "neat|populator", {"population_size": int}, ("population_size",))
    )
    return SelectorConfig(**options)


def updater_config(configurer: Configurer) -> UpdaterConfig:
    return UpdaterConfig(
        **_options(
            configurer,
            "neat|selector",
            {"species_decay_rate": float, "comparison": Comparison},
        )
    )


def speciator_config(configurer: Configurer) -> SpeciatorConfig:
    return SpeciatorConfig(
        **_options(
            configurer,
            "neat|speciator",
            {
                "compatibility_threshold": float,
                "compatibility_modifier": float,
                "target_species": int,
            },
        )
    )


def compatibility_config(configurer: Configurer) -> CompatibilityConfig:
    return CompatibilityConfig(
        **_options(
            configurer,
            "neat|distancer",
            {
                "nodes_coefficient": float,
                "activation_coefficient": float,
                "conns_coefficient": float,
                "weight_coefficient": float,
                "bias_coefficient": float,
            },
        )
    )


def complexify_config(configurer: Configurer) -> ComplexifyConfig:
    return ComplexifyConfig(
        **_options(
            configurer,
            "neat|mutator|complexify",
            {
                "add_node_probability": float,
                "add_conn_probability": float,
                "weight_power": float,
                "max_weight": float,
                "bias_power": float,
                "max_bias": float,
                "hidden_activation": Activation,
            },
        )
    )


def weight_config(configurer: Configurer) -> WeightConfig:
    return WeightConfig(
        **_options(
            configurer,
            "neat|mutator|weight",
            {
                "mutate_weight_probability": float,
                "replace_weight_probability": float,
                "weight_power": float,
                "max_weight": float,
            },
        )
    )


def bias_config(configurer: Configurer) -> BiasConfig:
    return BiasConfig(
        **_options(
            configurer,
            "neat|mutator|bias",
            {
                "mutate_bias_probability": float,
                "replace_bias_probability": float,
                "bias_power": float,
                "max_bias": float,
            },
        )
    )


def trait_config(configurer: Configurer) -> TraitConfig:
    return TraitConfig(
        **_options(
            configurer,
            "neat|mutator|trait",
            {"mutate_trait_probability": float, "replace_trait_probability": float},
        )
    )


def activation_config(configurer: Configurer) -> ActivationConfig:
    return ActivationConfig(
        **_options(
            configurer,
            "neat|mutator|activation",
            {"replace_activation_probability": float, "activations": tuple},
        )
    )


def simplify_config(configurer: Configurer) -> SimplifyConfig:
    return SimplifyConfig(
        **_options(
            configurer,
            "neat|mutator|simplify",
            {"del_node_probability": float, "del_conn_probability": float},
        )
    )


def pruning_config(configurer: Configurer) -> PruningConfig:
    return PruningConfig(
        **_options(
            configurer,
            "neat|mutator|pruning",
            {"disable_probability": float, "prune_probability": float},
        )
    )


def phased_config(configurer: Configurer) -> PhasedConfig | None:
    """Return the phased settings, or ``None`` when no phase threshold is set."""
    options = _options(
        configurer,
        "neat|mutator|phased",
        {"phase_threshold": float, "hold_phase": int},
    )
    if not options.get("phase_threshold"):
        return None
    return PhasedConfig(**options)


def hyperneat_transcriber_config(configurer: Configurer) -> HyperNEATTranscriberConfig:
    return HyperNEATTranscriberConfig(
        **_options(
            configurer,
            "hyperneat|transcriber",
            {"weight_power": float, "bias_power": float},
        )
    )


def hyperneat_seeder_config(configurer: Configurer) -> HyperNEATSeederConfig:
    options = _options(
        configurer,
        "neat|seeder",
        {"num_traits": int, "disconnect_rate": float},
    )
    options.update(
        _options(
            configurer,
            "hyperneat|transcriber",
            {
                "seed_locality_layer": bool,
                "seed_locality_x": bool,
                "seed_locality_y": bool,
                "seed_locality_z": bool,
            },
        )
    )
    return HyperNEATSeederConfig(**options)


def inspector(configurer: Configurer) -> Inspector:
    """Pick the link inspector: ``leo`` (default) or ``threshold``."""
    name = _normalise(configurer.get_str("hyperneat|transcriber|inspector", "leo"))
    if name in ("leo", "linkexpressionoutput"):
        return LinkExpressionOutput()
    if name in ("threshold", "constantthreshold"):
        threshold = configurer.get_float("hyperneat|transcriber|threshold")
        return ConstantThreshold() if threshold is None else ConstantThreshold(threshold)
    msg = f"Unknown inspector {name!r}."
    raise ConfigError(msg)


def build_mutators(
    configurer: Configurer,
    selector: Selector,
    *,
    hyperneat: bool = False,
) -> tuple[MutatorPipeline, Phased | None]:
    """Assemble the mutator pipeline with structural mutators first.

    Returns the pipeline and, when configured, the phased mutator whose
    ``update`` must be subscribed to the evaluated event.
    """
    mutators: list[Mutator] = []
    complexify = complexify_config(configurer)
    simplify = simplify_config(configurer)
    grows = complexify.add_node_probability > 0 or complexify.add_conn_probability > 0
    shrinks = simplify.del_node_probability > 0 or simplify.del_conn_probability > 0
    phased_settings = phased_config(configurer)
    phased: Phased | None = None
    if grows and shrinks and phased_settings is not None:
        phased = Phased(
            config=phased_settings,
            complexify=Complexify(complexify),
            simplify=Simplify(simplify),
            comparison=selector.config.comparison,
            toggle=selector,
        )
        mutators.append(phased)
    else:
        if grows:
            mutators.append(Complexify(complexify))
        if shrinks:
            mutators.append(Simplify(simplify))

    pruning = pruning_config(configurer)
    if pruning.disable_probability > 0:
        mutators.append(Pruning(pruning))
    weight = weight_config(configurer)
    if weight.mutate_weight_probability > 0:
        mutators.append(WeightMutator(weight))
    bias = bias_config(configurer)
    if bias.mutate_bias_probability > 0:
        mutators.append(BiasMutator(bias))
    trait = trait_config(configurer)
    if trait.mutate_trait_probability > 0:
        mutators.append(TraitMutator(trait))
    if hyperneat:
        activation = activation_config(configurer)
        if activation.replace_activation_probability > 0 and activation.activations:
            mutators.append(ActivationMutator(activation))
    return MutatorPipeline(tuple(mutators)), phased


def build_experiment(
    configurer: Configurer,
    evaluator: Evaluator,
    *,
    template: Substrate | None = None,
    searcher: Searcher | None = None,
    seed: int | None = None,
    logger: EventLogger | None = None,
) -> Experiment:
    """Build a NEAT experiment, or a HyperNEAT one when ``template`` is given."""
    selector = Selector(selector_config(configurer))
    mutators, phased = build_mutators(configurer, selector, hyperneat=template is not None)
    if template is None:
        seeder = NEATSeeder(seeder_config(configurer))
        transcriber = Transcriber()
    else:
        seeder = HyperNEATSeeder(hyperneat_seeder_config(configurer))
        transcriber = HyperNEATTranscriber(
            template=template,
            config=hyperneat_transcriber_config(configurer),
            inspector=inspector(configurer),
        )
    experiment = Experiment(
        seeder=seeder,
        populator=Populator(populator_config(configurer)),
        selector=selector,
        crosser=Crosser(crosser_config(configurer)),
        mutators=mutators,
        speciator=Speciator(speciator_config(configurer), compatibility_config(configurer)),
        transcriber=transcriber,
        evaluator=evaluator,
        searcher=searcher,
        updater=Updater(updater_config(configurer)),
        seed=seed,
        logger=logger,
    )
    if phased is not None:
        experiment.subscribe(Subscription(Event.EVALUATED, phased.update))
    return experiment


__all__ = [
    "Configurer",
    "build_experiment",
    "build_mutators",
    "compatibility_config",
    "complexify_config",
    "crosser_config",
    "hyperneat_seeder_config",
    "hyperneat_transcriber_config",
    "inspector",
    "phased_config",
    "populator_config",
    "seeder_config",
    "selector_config",
    "speciator_config",
    "updater_config",
]
