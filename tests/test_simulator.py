"""Tests for the cbqueue-sim runner, display and CLI parsing."""

import io

from rich.console import Console

from cbqueue_sim.cli import build_parser
from cbqueue_sim.display import SimulationState, SimulatorDisplay, print_final_summary
from cbqueue_sim.runner import SimConfig, SimulationRunner


class TestRunner:
    """Tests for SimulationRunner."""

    async def test_all_work_completes(self):
        state = SimulationState()
        config = SimConfig(count=20, latency_ms=1, max_concurrent=3)
        runner = SimulationRunner(config, state)

        await runner.run()

        assert state.submitted == 20
        assert state.completed == 20
        assert state.failed == 0
        assert state.queued == 0
        assert state.running == 0
        assert 0 < state.peak_running <= 3
        assert state.progress == 1.0
        assert state.transitions["busy"] == 1
        assert state.transitions["idle"] == 1
        assert state.queue_state == "STOPPED"

    async def test_failures_and_retries_counted(self):
        state = SimulationState()
        config = SimConfig(count=5, latency_ms=0, error_rate=1.0, retries=1, max_concurrent=2)
        runner = SimulationRunner(config, state)

        await runner.run()

        assert state.completed == 0
        assert state.failed == 5
        assert state.retried == 5
        assert state.errors == 10

    async def test_events_recorded(self):
        events = []
        state = SimulationState()
        config = SimConfig(count=3, latency_ms=0, max_concurrent=1)
        runner = SimulationRunner(config, state, on_event=lambda *args: events.append(args[0]))

        await runner.run()

        assert events[0] == "busy"
        assert events.count("started") == 3
        assert events.count("completed") == 3
        assert "queued" in events

    async def test_submit_rate(self):
        state = SimulationState()
        config = SimConfig(count=4, latency_ms=0, submit_rate=200)
        runner = SimulationRunner(config, state)

        await runner.run()

        assert state.submitted == 4
        assert state.completed == 4

    async def test_cleanup_after_run_is_safe(self):
        state = SimulationState()
        runner = SimulationRunner(SimConfig(count=2, latency_ms=0), state)

        await runner.run()
        await runner.cleanup()

        assert state.completed == 2


class TestDisplay:
    """Tests for rendering state."""

    def test_state_progress_and_events(self):
        state = SimulationState(submitted=10, completed=4, failed=1, elapsed=2.0, max_events=2)
        assert state.progress == 0.5
        assert state.throughput == 2.5

        for i in range(3):
            state.add_event("completed", f"work_{i}")

        assert [e.work_id for e in state.events] == ["work_2", "work_1"]

    def test_layout_renders(self):
        output = io.StringIO()
        console = Console(file=output, width=100, force_terminal=False)
        state = SimulationState(submitted=5, queued=2, running=1, max_concurrent=2, queue_state="BUSY")
        state.add_event("started", "work_0001", "attempt 1")

        console.print(SimulatorDisplay(state, console=console)._build_layout())

        text = output.getvalue()
        assert "cbqueue-sim" in text
        assert "BUSY" in text
        assert "work_0001" in text

    def test_final_summary(self):
        output = io.StringIO()
        state = SimulationState(submitted=3, completed=3, max_concurrent=2, peak_running=2)

        print_final_summary(state, console=Console(file=output, width=100))

        assert "Simulation Results" in output.getvalue()


class TestCli:
    """Tests for argument parsing."""

    def test_defaults(self):
        args = build_parser().parse_args([])
        assert args.count == 100
        assert args.concurrent == 5
        assert args.retries == 0
        assert args.no_tui is False

    def test_flags(self):
        args = build_parser().parse_args(["-n", "10", "-c", "2", "-R", "3", "-e", "0.5", "--no-tui"])
        assert args.count == 10
        assert args.concurrent == 2
        assert args.retries == 3
        assert args.error_rate == 0.5
        assert args.no_tui is True
