from pathlib import Path

import pytest

from corecross.config import Settings, load_profile, load_recipes, profile_from_config
from corecross.errors import ConfigurationError

RECIPE = """\
# header comment
---
config:
  arch: arm
  target_cross: arm-linux-gnueabihf-
  target_cflags: "-O2"
  target_cxxflags: "-O2 -fno-rtti"
  target_optimization: "-mcpu=cortex-a7"
  target_float: "-mfloat-abi=hard"
  gnu_target_name: arm-linux-gnueabihf
  buildroot:
    BR2_ARM_FPU_NEON_VFPV4: "y"
cores:
  zeta:
    repo: libretro/zeta
    commit: 0123abc
    build_type: make
  alpha:
    repo: libretro/alpha
    tag: v2
    build_type: cmake
    cmake_opts: ["-DLIBRETRO=ON"]
"""


def test_load_profile_joins_flag_fragments(tmp_path: Path) -> None:
    recipe_file = _write(tmp_path / "arm32.yml", RECIPE)

    profile = load_profile("arm32", recipe_file=recipe_file)

    assert profile.family == "arm32"
    assert profile.is_32bit_arm
    assert profile.cflags == "-O2 -mcpu=cortex-a7 -mfloat-abi=hard"
    assert profile.cxxflags == "-O2 -fno-rtti -mcpu=cortex-a7 -mfloat-abi=hard"
    assert profile.ldflags == "-mcpu=cortex-a7 -mfloat-abi=hard"
    assert profile.platform == "unix"
    assert profile.gnu_target_name == "arm-linux-gnueabihf"
    assert profile.buildroot == {"BR2_ARM_FPU_NEON_VFPV4": "y"}


def test_load_profile_uses_recipes_dir(tmp_path: Path) -> None:
    _write(tmp_path / "recipes" / "arm32.yml", RECIPE)

    profile = load_profile("arm32", recipes_dir=tmp_path / "recipes")

    assert profile.target_cross == "arm-linux-gnueabihf-"


def test_missing_required_fields_are_all_named() -> None:
    with pytest.raises(ConfigurationError) as excinfo:
        profile_from_config("arm64", {"arch": "aarch64", "target_cflags": ""})

    message = str(excinfo.value)
    assert "target_cross" in message
    assert "target_cxxflags" in message
    assert "target_cflags" not in message


def test_empty_flags_are_accepted() -> None:
    profile = profile_from_config(
        "arm64",
        {"arch": "aarch64", "target_cross": "aarch64-linux-gnu-", "target_cflags": "", "target_cxxflags": ""},
    )

    assert profile.cflags == ""


def test_missing_recipe_file_is_a_configuration_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError, match="not found"):
        load_profile("nope", recipes_dir=tmp_path)


def test_invalid_yaml_is_a_configuration_error(tmp_path: Path) -> None:
    recipe_file = _write(tmp_path / "bad.yml", "config: [unclosed\n")

    with pytest.raises(ConfigurationError, match="not valid YAML"):
        load_profile("bad", recipe_file=recipe_file)


def test_missing_config_section(tmp_path: Path) -> None:
    recipe_file = _write(tmp_path / "arm64.yml", "cores: {}\n")

    with pytest.raises(ConfigurationError, match="config"):
        load_profile("arm64", recipe_file=recipe_file)


def test_load_recipes_keeps_declaration_order(tmp_path: Path) -> None:
    recipe_file = _write(tmp_path / "arm32.yml", RECIPE)

    recipes = load_recipes(recipe_file)

    assert list(recipes) == ["zeta", "alpha"]
    assert recipes["zeta"].ref == "0123abc"
    assert recipes["alpha"].ref == "v2"
    assert recipes["alpha"].cmake_opts == ("-DLIBRETRO=ON",)


def test_load_recipes_requires_cores_section(tmp_path: Path) -> None:
    recipe_file = _write(tmp_path / "arm64.yml", "config: {}\n")

    with pytest.raises(ConfigurationError, match="cores"):
        load_recipes(recipe_file)


def test_load_recipes_rejects_non_mapping_entry(tmp_path: Path) -> None:
    recipe_file = _write(tmp_path / "arm64.yml", "cores:\n  broken: just-a-string\n")

    with pytest.raises(ConfigurationError) as excinfo:
        load_recipes(recipe_file)

    assert excinfo.value.context["core"] == "broken"


def test_settings_from_env() -> None:
    settings = Settings.from_env(
        {
            "CMAKE_PREFIX_PATH": "/opt/sysroot/usr",
            "VERBOSE": "1",
            "NO_COLOR": "1",
            "CORECROSS_JOBS": "8",
            "CORECROSS_FETCH_WORKERS": "2",
        }
    )

    assert settings == Settings(
        cmake_prefix_path="/opt/sysroot/usr",
        verbose=True,
        no_color=True,
        jobs=8,
        fetch_workers=2,
    )


def test_settings_defaults_from_empty_env() -> None:
    assert Settings.from_env({}) == Settings()


@pytest.mark.parametrize("value", ["many", "0"])
def test_settings_reject_bad_integers(value: str) -> None:
    with pytest.raises(ConfigurationError):
        Settings.from_env({"CORECROSS_JOBS": value})


def test_bundled_recipes_load() -> None:
    recipes_dir = Path(__file__).resolve().parents[1] / "recipes" / "linux"
    for family in ("cortex-a7", "cortex-a53"):
        profile = load_profile(family, recipes_dir=recipes_dir)
        recipes = load_recipes(recipes_dir / f"{family}.yml")
        assert profile.family == family
        assert "flycast-xtreme" in recipes


def _write(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path
