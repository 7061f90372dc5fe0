# tests/test_runtime.py
"""
Tests for the reference evaluator, runtime configuration and the
headless render loop.
"""

import logging
import math
import threading

import pytest

from livexpr.codegen import Opcode, Program, compile_expression, variable_word
from livexpr.errors import LivexprErrorCodes, ProgramError
from livexpr.runtime import (
    Evaluator,
    RenderLoop,
    RuntimeConfig,
    StackEvaluator,
    render_ascii,
)
from tests.conftest import DEFAULT_SRC, RecordingEvaluator


def _run(src, t=0.0, u=0.0, v=0.0):
    evaluator = StackEvaluator()
    evaluator.install_program(compile_expression(src))
    return evaluator.evaluate(t, u, v)


class TestStackEvaluator:

    @pytest.mark.parametrize("src,expected", [
        ("1+2*3", 7.0),
        ("(1+2)*3", 9.0),
        ("1-2-3", -4.0),
        ("8/4/2", 1.0),
        ("cos(t)", 1.0),
        ("sin(t)", 0.0),
    ])
    def test_arithmetic(self, src, expected):
        assert _run(src) == expected

    def test_variables(self):
        assert _run("u*20", u=0.5) == 10.0
        assert _run("t+u+v", t=1.0, u=2.0, v=4.0) == 7.0

    def test_default_formula_at_time_zero(self):
        assert _run(DEFAULT_SRC, t=0.0, u=0.3, v=0.7) == pytest.approx(1.0)

    def test_literals_are_binary32(self):
        assert _run("16777217") == 16777216.0

    def test_division_by_zero_follows_ieee(self):
        assert _run("1/0") == math.inf
        assert _run("(0-1)/0") == -math.inf
        assert math.isnan(_run("0/0"))

    def test_trig_of_infinity_is_nan(self):
        assert math.isnan(_run("sin(1/0)"))

    def test_evaluate_without_program(self):
        with pytest.raises(ProgramError) as info:
            StackEvaluator().evaluate(0.0, 0.0, 0.0)
        assert info.value.code == LivexprErrorCodes.NO_PROGRAM

    def test_install_tracks_generation(self):
        evaluator = StackEvaluator()
        first = compile_expression("t")
        evaluator.install_program(first)
        evaluator.install_program(compile_expression("u"))
        assert evaluator.generation == 2
        assert evaluator.installed == compile_expression("u")

    def test_satisfies_evaluator_protocol(self):
        assert isinstance(StackEvaluator(), Evaluator)
        assert isinstance(RecordingEvaluator(), Evaluator)


class TestProgramChecks:

    @pytest.mark.parametrize("words", [
        (),
        (int(Opcode.MUL),),
        (variable_word(0), int(Opcode.ADD)),
        (variable_word(0), variable_word(1)),
        (variable_word(5),),
        (3,),
    ], ids=["empty", "no_operands", "one_operand", "two_results", "bad_slot", "bad_word"])
    def test_rejects_malformed(self, words):
        with pytest.raises(ProgramError):
            StackEvaluator().install_program(Program(words))

    def test_bad_word_reports_position(self):
        with pytest.raises(ProgramError) as info:
            StackEvaluator.check(Program((variable_word(0), 3)))
        assert info.value.position == 1

    def test_failed_install_keeps_previous_program(self):
        evaluator = StackEvaluator()
        evaluator.install_program(compile_expression("u+1"))
        with pytest.raises(ProgramError):
            evaluator.install_program(Program((int(Opcode.SIN),)))
        assert evaluator.evaluate(0.0, 2.0, 0.0) == 3.0
        assert evaluator.generation == 1


class TestSampling:

    def test_sample_grid_coordinates(self):
        evaluator = StackEvaluator()
        evaluator.install_program(compile_expression("u"))
        assert evaluator.sample(0.0, 4, 2) == [[0.0, 0.25, 0.5, 0.75]] * 2

        evaluator.install_program(compile_expression("v"))
        assert evaluator.sample(0.0, 2, 2) == [[0.0, 0.0], [0.5, 0.5]]

    def test_render_ascii(self):
        assert render_ascii([[0.0, 1.0, math.nan, 2.0, -1.0]]) == " @?@ "
        assert render_ascii([[0.0], [1.0]]) == " \n@"


class TestRuntimeConfig:

    def test_defaults_are_valid(self):
        config = RuntimeConfig()
        assert config.validate() == []
        assert config.max_fps == 60
        assert config.prompt == "> "
        assert config.default_expression == DEFAULT_SRC

    def test_invalid_values(self):
        warnings = RuntimeConfig(max_fps=0, width=0, default_expression=" ").validate()
        assert len(warnings) == 3


class TestRenderLoop:

    def test_rejects_non_positive_fps(self):
        with pytest.raises(ValueError):
            RenderLoop(lambda frame: None, max_fps=0)

    def test_runs_until_stopped(self):
        seen = threading.Event()
        frames = []

        def iteration(frame):
            frames.append(frame)
            if len(frames) >= 3:
                seen.set()

        loop = RenderLoop(iteration, max_fps=1000)
        loop.start()
        try:
            assert seen.wait(5.0)
            assert loop.running
        finally:
            loop.stop(timeout=5.0)
        assert not loop.running
        assert frames[:3] == [0, 1, 2]
        assert loop.frames == len(frames)

    def test_failed_iteration_is_logged_and_loop_continues(self, caplog):
        recovered = threading.Event()

        def iteration(frame):
            if frame == 0:
                raise ZeroDivisionError("frame zero")
            recovered.set()

        loop = RenderLoop(iteration, max_fps=1000)
        with caplog.at_level(logging.ERROR, logger="livexpr.runtime"):
            loop.start()
            try:
                assert recovered.wait(5.0)
                assert loop.running
            finally:
                loop.stop(timeout=5.0)
        failures = [r for r in caplog.records if r.name == "livexpr.runtime"]
        assert failures[0].getMessage() == "Render iteration 0 failed"
        assert failures[0].exc_info[0] is ZeroDivisionError
        assert loop.frames >= 2

    def test_cannot_start_twice(self):
        loop = RenderLoop(lambda frame: None, max_fps=1000)
        loop.start()
        try:
            with pytest.raises(RuntimeError):
                loop.start()
        finally:
            loop.stop(timeout=5.0)
