"""Recipe-file parsing and ambient settings.

A recipe file is one YAML document per CPU family::

    # comments before the document marker are fine
    ---
    config:
      arch: aarch64
      target_cross: aarch64-linux-gnu-
      target_cflags: "-O2 -pipe"
      target_cxxflags: "-O2 -pipe"
    cores:
      gambatte:
        repo: libretro/gambatte-libretro
        commit: 47c5a2feaa9c253efc407283d9247a3c055f9efb
        build_type: make
        ...

The ``config`` section becomes a :class:`CpuTargetProfile`; the ``cores``
section becomes an ordered ``name -> CoreRecipe`` mapping.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from corecross.errors import ConfigurationError
from corecross.models import DEFAULT_PLATFORM, CoreRecipe, CpuTargetProfile

logger = logging.getLogger(__name__)

DEFAULT_RECIPES_DIR = Path("recipes/linux")
REQUIRED_PROFILE_FIELDS = ("arch", "target_cross", "target_cflags", "target_cxxflags")


@dataclass(frozen=True, slots=True)
class Settings:
    """Values read from the process environment once per run."""

    cmake_prefix_path: str | None = None
    verbose: bool = False
    no_color: bool = False
    jobs: int = 1
    fetch_workers: int = 4

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        env = os.environ if environ is None else environ
        return cls(
            cmake_prefix_path=env.get("CMAKE_PREFIX_PATH") or None,
            verbose=env.get("VERBOSE") == "1",
            no_color=bool(env.get("NO_COLOR")),
            jobs=_env_int(env, "CORECROSS_JOBS", 1),
            fetch_workers=_env_int(env, "CORECROSS_FETCH_WORKERS", 4),
        )


def _env_int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigurationError(
            f"Environment variable `{key}` must be an integer.",
            context={"value": raw},
        ) from exc
    if value < 1:
        raise ConfigurationError(
            f"Environment variable `{key}` must be at least 1.",
            context={"value": raw},
        )
    return value


def recipe_file_for(family: str, recipes_dir: str | Path = DEFAULT_RECIPES_DIR) -> Path:
    return Path(recipes_dir) / f"{family}.yml"


def read_recipe_document(path: str | Path) -> dict[str, Any]:
    recipe_path = Path(path)
    try:
        raw = recipe_path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ConfigurationError(
            "Recipe file not found.",
            hint="Create recipes/linux/<family>.yml or pass an explicit recipe file.",
            context={"path": str(recipe_path)},
        ) from exc
    try:
        payload = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise ConfigurationError(
            "Recipe file is not valid YAML.",
            hint=str(exc),
            context={"path": str(recipe_path)},
        ) from exc
    if not isinstance(payload, dict):
        raise ConfigurationError(
            "Recipe file must contain a mapping.",
            context={"path": str(recipe_path)},
        )
    return payload


def load_profile(
    family: str,
    *,
    recipe_file: str | Path | None = None,
    recipes_dir: str | Path = DEFAULT_RECIPES_DIR,
) -> CpuTargetProfile:
    """Build the CPU profile for ``family`` from its recipe file's ``config`` section."""
    path = Path(recipe_file) if recipe_file is not None else recipe_file_for(family, recipes_dir)
    document = read_recipe_document(path)
    config = document.get("config")
    if not isinstance(config, dict):
        raise ConfigurationError(
            "No `config` section found in recipe file.",
            context={"family": family, "path": str(path)},
        )
    logger.debug("Loading config for %s from %s", family, path)
    return profile_from_config(family, config)


def profile_from_config(family: str, config: Mapping[str, Any]) -> CpuTargetProfile:
    missing = [key for key in REQUIRED_PROFILE_FIELDS if config.get(key) is None]
    if missing:
        raise ConfigurationError(
            f"Missing required config fields: {', '.join(missing)}",
            context={"family": family},
        )

    optimization = str(config.get("target_optimization") or "")
    float_abi = str(config.get("target_float") or "")

    def _flags(key: str) -> str:
        base = str(config.get(key) or "")
        return " ".join(part for part in (base, optimization, float_abi) if part).strip()

    buildroot = config.get("buildroot") or {}
    if not isinstance(buildroot, dict):
        raise ConfigurationError(
            "Config `buildroot` must be a mapping.",
            context={"family": family},
        )

    profile = CpuTargetProfile(
        family=family,
        arch=str(config["arch"]),
        target_cross=str(config["target_cross"]),
        cflags=_flags("target_cflags"),
        cxxflags=_flags("target_cxxflags"),
        ldflags=_flags("target_ldflags"),
        platform=str(config.get("platform") or DEFAULT_PLATFORM),
        gnu_target_name=_optional(config.get("gnu_target_name")),
        target_cpu=_optional(config.get("target_cpu")),
        target_arch=_optional(config.get("target_arch")),
        buildroot=dict(buildroot),
    )
    logger.debug("Config loaded: %s (%s)", profile.arch, profile.target_cpu)
    return profile


def load_recipes(recipe_file: str | Path) -> dict[str, CoreRecipe]:
    """Return the ``cores`` section as an ordered ``name -> CoreRecipe`` mapping."""
    path = Path(recipe_file)
    document = read_recipe_document(path)
    cores = document.get("cores")
    if not isinstance(cores, dict):
        raise ConfigurationError(
            "No `cores` section found in recipe file.",
            context={"path": str(path)},
        )
    recipes: dict[str, CoreRecipe] = {}
    for name, entry in cores.items():
        if not isinstance(entry, dict):
            raise ConfigurationError(
                "Core recipe must be a mapping.",
                context={"path": str(path), "core": str(name)},
            )
        recipes[str(name)] = CoreRecipe.from_mapping(str(name), entry)
    return recipes


def _optional(value: Any) -> str | None:
    return None if value is None else str(value)
