# tests/test_bridge.py
"""
Tests for the live-program hand-off: slot semantics, the line-reading
producer and the per-frame consumer.
"""

import io
import logging
import threading

from livexpr.bridge import ProgramConsumer, ProgramProducer, ProgramSlot
from livexpr.codegen import Opcode, Program, compile_expression
from livexpr.runtime import StackEvaluator
from tests.conftest import RecordingEvaluator

PROGRAM_A = compile_expression("t")
PROGRAM_B = compile_expression("u*2")


def _producer(slot, prompt="", output=None):
    diagnostics = io.StringIO()
    producer = ProgramProducer(
        slot,
        stream=io.StringIO(),
        diagnostics=diagnostics,
        prompt=prompt,
        output=output if output is not None else io.StringIO(),
    )
    return producer, diagnostics


class TestProgramSlot:

    def test_last_write_wins(self):
        slot = ProgramSlot()
        assert slot.stage(PROGRAM_A) is False
        assert slot.stage(PROGRAM_B) is True
        assert slot.take() == PROGRAM_B

    def test_take_clears(self):
        slot = ProgramSlot()
        slot.stage(PROGRAM_A)
        assert slot.pending
        assert slot.take() == PROGRAM_A
        assert not slot.pending
        assert slot.take() is None


class TestProgramConsumer:

    def test_skips_intermediate_programs(self, recorder):
        slot = ProgramSlot()
        consumer = ProgramConsumer(slot, recorder)
        slot.stage(PROGRAM_A)
        slot.stage(PROGRAM_B)
        assert consumer.poll() == PROGRAM_B
        assert recorder.installs == [PROGRAM_B]

    def test_empty_poll_is_noop(self, recorder):
        slot = ProgramSlot()
        consumer = ProgramConsumer(slot, recorder)
        slot.stage(PROGRAM_A)
        consumer.poll()
        assert consumer.poll() is None
        assert recorder.installs == [PROGRAM_A]
        assert consumer.installed == 1

    def test_rejected_program_is_dropped(self, caplog):
        slot = ProgramSlot()
        consumer = ProgramConsumer(slot, RecordingEvaluator(reject=True))
        slot.stage(PROGRAM_A)
        with caplog.at_level(logging.ERROR, logger="livexpr.bridge"):
            assert consumer.poll() is None
        assert consumer.installed == 0
        assert not slot.pending
        assert "rejected" in caplog.text

    def test_malformed_program_keeps_running_one(self):
        slot = ProgramSlot()
        evaluator = StackEvaluator()
        consumer = ProgramConsumer(slot, evaluator)
        slot.stage(PROGRAM_B)
        consumer.poll()
        slot.stage(Program((int(Opcode.SIN),)))
        assert consumer.poll() is None
        assert evaluator.evaluate(0.0, 3.0, 0.0) == 6.0


class TestProgramProducer:

    def test_feed_line_stages(self):
        slot = ProgramSlot()
        producer, diagnostics = _producer(slot)
        assert producer.feed_line("u*2\n") is True
        assert slot.take() == PROGRAM_B
        assert diagnostics.getvalue() == ""

    def test_feed_line_strips_crlf(self):
        slot = ProgramSlot()
        producer, _ = _producer(slot)
        assert producer.feed_line("t\r\n") is True
        assert slot.take() == PROGRAM_A

    def test_parse_failure_leaves_slot_untouched(self, caplog):
        slot = ProgramSlot()
        slot.stage(PROGRAM_A)
        producer, diagnostics = _producer(slot)
        with caplog.at_level(logging.WARNING, logger="livexpr.bridge"):
            assert producer.feed_line("1+2)\n") is False
        assert diagnostics.getvalue() == "Parse error here:\n1+2)\n   ^\n"
        assert slot.take() == PROGRAM_A
        assert producer.failed == 1
        assert "LXP-1001" in caplog.text

    def test_unknown_variable_is_reported(self):
        slot = ProgramSlot()
        producer, diagnostics = _producer(slot)
        assert producer.feed_line("w") is False
        assert "Unknown variable: w" in diagnostics.getvalue()
        assert not slot.pending

    def test_run_reads_until_end_of_input(self):
        slot = ProgramSlot()
        output = io.StringIO()
        producer, diagnostics = _producer(slot, prompt="> ", output=output)
        producer.stream = io.StringIO("t\nbad)\nu*2\n")
        assert producer.run() == 2
        assert producer.failed == 1
        assert slot.take() == PROGRAM_B
        assert output.getvalue() == "> " * 4 + "\n"
        assert "Parse error here:" in diagnostics.getvalue()

    def test_undecodable_bytes_reject_only_their_line(self):
        slot = ProgramSlot()
        producer, diagnostics = _producer(slot)
        producer.stream = io.TextIOWrapper(io.BytesIO(b"t\n\xff\nu\n"), encoding="utf-8")
        assert producer.run() == 2
        assert producer.failed == 1
        assert slot.take() == compile_expression("u")
        assert diagnostics.getvalue() == "Parse error here:\n\ufffd\n^\n"


class TestConcurrentHandOff:

    def test_consumer_ends_on_last_staged_program(self):
        lines = [f"u*{n}\n" for n in range(1, 201)]
        slot = ProgramSlot()
        recorder = RecordingEvaluator()
        consumer = ProgramConsumer(slot, recorder)
        producer, _ = _producer(slot)
        producer.stream = io.StringIO("".join(lines))

        stop = threading.Event()

        def render():
            while not stop.is_set():
                consumer.poll()

        thread = threading.Thread(target=render)
        thread.start()
        try:
            producer.run()
        finally:
            stop.set()
            thread.join(5.0)
        consumer.poll()

        assert recorder.installs[-1] == compile_expression("u*200")
        assert 1 <= len(recorder.installs) <= 200
        assert len(set(p.words for p in recorder.installs)) == len(recorder.installs)
