"""Tests for the generation driver."""

import pytest
import yaml

from ffigen.core_generator import CoreGenerator
from ffigen.driver import Driver, DriverState
from ffigen.errors import GeneratorError, ModelError, ModelErrorKind
from ffigen.swift_generator import SwiftGenerator


BAD_IDL = """
buffer Credential[64];

module auth {
    verifyCredential(Credential credential, Proof proof);
};
"""


class BrokenGenerator(CoreGenerator):
    TARGET = "broken"
    OUTPUT_DIRS = ("broken",)

    def generate(self):
        raise RuntimeError("boom")


class StrayGenerator(CoreGenerator):
    TARGET = "stray"
    OUTPUT_DIRS = ("stray",)

    def generate(self):
        return {"elsewhere/file.rs": ""}


class TestDriver:
    def test_run_writes_every_target(self, scenario_idl, tmp_path, read_tree):
        out = tmp_path / "out"
        driver = Driver(scenario_idl, out)
        written = driver.run()

        assert driver.state is DriverState.DONE
        assert written == sorted(written)
        tree = read_tree(out)
        assert set(tree) == {p.relative_to(out).as_posix() for p in written}
        assert {rel.split("/")[0] for rel in tree} == {"ffiapi", "simpleapi", "ffiapijava", "java", "swift"}
        assert not [p for p in out.iterdir() if p.name.startswith(".ffigen-")]

    def test_idempotent(self, scenario_idl, tmp_path, read_tree):
        out = tmp_path / "out"
        Driver(scenario_idl, out).run()
        first = read_tree(out)
        Driver(scenario_idl, out).run()
        assert read_tree(out) == first

    def test_selected_targets(self, scenario_idl, tmp_path):
        out = tmp_path / "out"
        driver = Driver(scenario_idl, out, targets=["swift"])
        assert [g.TARGET for g in driver.generators] == ["swift"]
        driver.run()
        assert [p.name for p in out.iterdir()] == ["swift"]

    def test_targets_keep_fixed_order(self, scenario_idl, tmp_path):
        driver = Driver(scenario_idl, tmp_path, targets=["swift", "core"])
        assert [g.TARGET for g in driver.generators] == ["core", "swift"]

    def test_unknown_target(self, scenario_idl, tmp_path):
        with pytest.raises(GeneratorError, match="unknown target"):
            Driver(scenario_idl, tmp_path, targets=["kotlin"])

    def test_invalid_model_writes_nothing(self, tmp_path):
        description = tmp_path / "bad.idl"
        description.write_text(BAD_IDL)
        out = tmp_path / "out"
        driver = Driver(description, out)
        with pytest.raises(ModelError) as info:
            driver.run()
        assert info.value.kind is ModelErrorKind.UNDEFINED_TYPE
        assert driver.state is DriverState.FAILED
        assert not out.exists()

    def test_failing_emitter_leaves_outputs_untouched(self, scenario_idl, tmp_path, read_tree):
        out = tmp_path / "out"
        Driver(scenario_idl, out).run()
        before = read_tree(out)

        driver = Driver(scenario_idl, out, generators=(CoreGenerator, BrokenGenerator))
        with pytest.raises(GeneratorError) as info:
            driver.run()
        assert info.value.target == "broken"
        assert "boom" in str(info.value)
        assert driver.state is DriverState.FAILED
        assert read_tree(out) == before

    def test_output_outside_target_directories(self, scenario_idl, tmp_path):
        driver = Driver(scenario_idl, tmp_path / "out", generators=(StrayGenerator,))
        with pytest.raises(GeneratorError, match="outside"):
            driver.run()
        assert not (tmp_path / "out").exists()

    def test_stale_files_removed(self, scenario_idl, tmp_path):
        out = tmp_path / "out"
        Driver(scenario_idl, out).run()
        stale = out / "java" / "auth" / "Removed.java"
        stale.write_text("class Removed {}")
        unrelated = out / "README.txt"
        unrelated.write_text("keep me")

        Driver(scenario_idl, out).run()
        assert not stale.exists()
        assert unrelated.read_text() == "keep me"

    def test_unselected_targets_are_kept(self, scenario_idl, tmp_path, read_tree):
        out = tmp_path / "out"
        Driver(scenario_idl, out).run()
        before = read_tree(out / "java")
        Driver(scenario_idl, out, generators=(CoreGenerator, SwiftGenerator)).run()
        assert read_tree(out / "java") == before

    def test_yaml_and_idl_generate_the_same_files(self, scenario_idl, scenario_raw, tmp_path, read_tree):
        yaml_path = tmp_path / "scenario.yaml"
        yaml_path.write_text(yaml.safe_dump(scenario_raw))
        Driver(scenario_idl, tmp_path / "from_idl").run()
        Driver(yaml_path, tmp_path / "from_yaml").run()
        assert read_tree(tmp_path / "from_idl") == read_tree(tmp_path / "from_yaml")

    def test_option_overrides(self, scenario_idl, tmp_path):
        out = tmp_path / "out"
        Driver(scenario_idl, out, option_overrides={"java_package": "org.example"}).run()
        assert "package org.example.internal;" in (out / "java" / "internal" / "Native.java").read_text()

    def test_sample_description(self, sample_idl, tmp_path):
        out = tmp_path / "out"
        Driver(sample_idl, out).run()
        auth = (out / "java" / "auth" / "Auth.java").read_text()
        assert auth.startswith("// Copyright (C) 2020 Signal Messenger, LLC.\n")
        assert (out / "swift" / "zkgroup.h").exists()
        assert (out / "ffiapi" / "ffiapi_profiles.rs").exists()
