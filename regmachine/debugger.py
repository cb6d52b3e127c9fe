"""
Textual TUI debugger for the register machine.

Instruction-stepping debugger that loads a program, runs it on the machine,
and displays the registers, instruction pointer and counters at every step.
When the program compares a register against register 0, the values seen
at that comparison are listed as signals.

Usage:
    python -m regmachine.debugger programs/trace.txt
    python -m regmachine.debugger programs/tripler.txt --r0 5
    python -m regmachine.debugger --run programs/divisors.txt
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import ScrollableContainer
from textual.widgets import Static, RichLog, Footer
from textual import work

from regmachine.cycle import CheckpointError, find_checkpoint
from regmachine.machine import RegisterMachine
from regmachine.program import Program, load_program


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------

class DebugSession:
    """Machine plus the debugger's bookkeeping: breakpoints, signal samples
    and output lines."""

    def __init__(self, program: Program, register0: int = 0,
                 checkpoint: int | None = None,
                 signal_register: int | None = None):
        self.program = program
        self.register0 = register0
        self.machine = RegisterMachine(program, register0)
        self.breakpoints: set[int] = set()
        self.output_lines: list[str] = []
        self.signals: list[int] = []
        self._seen_signals: set[int] = set()
        self.repeat_at: int | None = None

        if checkpoint is None or signal_register is None:
            try:
                checkpoint, signal_register = find_checkpoint(program)
            except CheckpointError:
                checkpoint = signal_register = None
        self.checkpoint = checkpoint
        self.signal_register = signal_register

    def reset(self):
        self.machine.reset(self.register0)
        self.output_lines = [f"reset (r0 = {self.register0})"]
        self.signals = []
        self._seen_signals = set()
        self.repeat_at = None

    def tick(self) -> bool:
        """Execute one instruction. Returns False once the machine halts."""
        m = self.machine
        if not m.step():
            return False
        if self.checkpoint is not None and m.ip == self.checkpoint:
            self._sample_signal()
        if not m.in_range():
            self.output_lines.append(
                f"halted after {m.steps} steps, r0 = {m.regs[0]}")
        return True

    def _sample_signal(self):
        value = self.machine.regs[self.signal_register]
        if value in self._seen_signals and self.repeat_at is None:
            self.repeat_at = len(self.signals)
            self.output_lines.append(
                f"signal {value} repeated after {len(self.signals)} distinct values")
        self._seen_signals.add(value)
        self.signals.append(value)

    def toggle_breakpoint(self, ip: int | None = None):
        if ip is None:
            ip = self.machine.ip
        if ip in self.breakpoints:
            self.breakpoints.discard(ip)
        else:
            self.breakpoints.add(ip)

    def at_breakpoint(self) -> bool:
        return self.machine.ip in self.breakpoints


# ---------------------------------------------------------------------------
# CSS
# ---------------------------------------------------------------------------

DEBUGGER_CSS = """
Screen {
    layout: grid;
    grid-size: 2 3;
    grid-columns: 1fr 1fr;
    grid-rows: 2fr 1fr auto;
}

.panel {
    border: solid $accent;
    border-title-align: left;
    overflow-y: auto;
    height: 100%;
}

#source-panel { row-span: 2; }

Footer {
    column-span: 2;
}
"""


# ---------------------------------------------------------------------------
# Panel widgets
# ---------------------------------------------------------------------------

class SourcePanel(ScrollableContainer):
    """Program listing with the current instruction highlighted."""
    BORDER_TITLE = "Program"

    def compose(self) -> ComposeResult:
        yield Static("", id="source-content")


class StatePanel(ScrollableContainer):
    """Machine state: ip, registers, counters."""
    BORDER_TITLE = "Machine State"

    def compose(self) -> ComposeResult:
        yield Static("", id="state-content")


class OutputPanel(ScrollableContainer):
    """Signal samples and session messages."""
    BORDER_TITLE = "Output"

    def compose(self) -> ComposeResult:
        yield RichLog(id="output-log", markup=True, wrap=True)


# ---------------------------------------------------------------------------
# Main debugger app
# ---------------------------------------------------------------------------

class MachineDebugger(App):
    """Textual TUI debugger for the register machine."""

    CSS = DEBUGGER_CSS
    TITLE = "Register Machine Debugger"

    BINDINGS = [
        Binding("s", "step_1", "Step"),
        Binding("space", "step_1", "Step", show=False),
        Binding("n", "step_10", "x10"),
        Binding("f", "step_100", "x100"),
        Binding("r", "run_to_end", "Run"),
        Binding("b", "toggle_breakpoint", "Break"),
        Binding("x", "reset", "Reset"),
        Binding("q", "quit", "Quit"),
    ]

    def __init__(self, session: DebugSession, auto_run: bool = False):
        super().__init__()
        self.session = session
        self.auto_run = auto_run
        self._output_line_count = 0
        self._signal_count = 0

    def compose(self) -> ComposeResult:
        yield SourcePanel(id="source-panel", classes="panel")
        yield StatePanel(id="state-panel", classes="panel")
        yield OutputPanel(id="output-panel", classes="panel")
        yield Footer()

    def on_mount(self) -> None:
        self.refresh_panels()
        if self.auto_run:
            self.action_run_to_end()

    # -------------------------------------------------------------------
    # Panel refresh
    # -------------------------------------------------------------------

    def refresh_panels(self) -> None:
        self._refresh_source()
        self._refresh_state()
        self._refresh_output()

    def _refresh_source(self) -> None:
        s = self.session
        ip = s.machine.ip
        lines = []
        for i, instr in enumerate(s.program):
            prefix = "●" if i in s.breakpoints else " "
            marker = "▸" if i == ip else " "
            tag = "  ← signal" if i == s.checkpoint else ""
            line = f"{prefix}{marker} {i:3d}│ {instr}{tag}"
            if i == ip:
                line = f"[bold reverse]{line}[/bold reverse]"
            lines.append(line)

        content = self.query_one("#source-content", Static)
        content.update("\n".join(lines) if lines else "(empty program)")

    def _refresh_state(self) -> None:
        s = self.session
        m = s.machine
        status = "halted" if m.halted or not m.in_range() else "running"
        nxt = m.current_instruction()
        regs = "\n".join(
            f"  r{i}{'*' if i == m.ip_register else ' '} = {val}"
            for i, val in enumerate(m.registers)
        )
        signal_info = "(no checkpoint)"
        if s.checkpoint is not None:
            signal_info = (f"r{s.signal_register} @ {s.checkpoint}: "
                           f"{len(s.signals)} sampled")
            if s.repeat_at is not None:
                signal_info += f", repeat after {s.repeat_at}"

        text = (
            f"[bold]IP:[/bold] {m.ip}    [bold]Status:[/bold] {status}\n"
            f"[bold]Next:[/bold] {nxt if nxt is not None else '-'}\n"
            f"[bold]Steps:[/bold] {m.steps}  [bold]Jumps:[/bold] {m.jumps}\n"
            f"[bold]Registers[/bold] (* = ip):\n{regs}\n"
            f"[bold]Signals:[/bold] {signal_info}"
        )
        content = self.query_one("#state-content", Static)
        content.update(text)

    def _refresh_output(self) -> None:
        log = self.query_one("#output-log", RichLog)
        s = self.session
        while self._signal_count < len(s.signals):
            log.write(f"signal[{self._signal_count}] = {s.signals[self._signal_count]}")
            self._signal_count += 1
        while self._output_line_count < len(s.output_lines):
            log.write(s.output_lines[self._output_line_count])
            self._output_line_count += 1

    # -------------------------------------------------------------------
    # Actions
    # -------------------------------------------------------------------

    def _report_error(self, err: Exception) -> None:
        """Show an error in the output panel."""
        self.session.output_lines.append(f"[ERROR] {err}")
        self.refresh_panels()

    def _do_steps(self, count: int) -> None:
        try:
            for _ in range(count):
                if not self.session.tick():
                    break
        except (ValueError, IndexError) as e:
            self._report_error(e)
            return
        self.refresh_panels()

    def action_step_1(self) -> None:
        self._do_steps(1)

    def action_step_10(self) -> None:
        self._do_steps(10)

    def action_step_100(self) -> None:
        self._do_steps(100)

    def action_toggle_breakpoint(self) -> None:
        self.session.toggle_breakpoint()
        self._refresh_source()

    def action_reset(self) -> None:
        self.session.reset()
        self._signal_count = 0
        self.query_one("#output-log", RichLog).clear()
        self._output_line_count = 0
        self.refresh_panels()

    @work(thread=True)
    def action_run_to_end(self) -> None:
        """Run to halt or the next breakpoint in a background thread."""
        try:
            step = 0
            while self.session.tick():
                step += 1
                if self.session.at_breakpoint():
                    break
                if step % 5000 == 0:
                    self.call_from_thread(self.refresh_panels)
        except (ValueError, IndexError) as e:
            self.call_from_thread(self._report_error, e)
            return
        self.call_from_thread(self.refresh_panels)


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

def main():
    parser = argparse.ArgumentParser(
        description="Register machine TUI debugger",
        prog="python -m regmachine.debugger",
    )
    parser.add_argument("file", help="Path to program file")
    parser.add_argument("--r0", type=int, default=0,
                        help="Initial value of register 0")
    parser.add_argument("--checkpoint", type=int, default=None,
                        help="Instruction index where signals are sampled")
    parser.add_argument("--signal", type=int, default=None,
                        help="Register sampled at the checkpoint")
    parser.add_argument("--run", action="store_true",
                        help="Run to completion immediately (auto-run mode)")
    args = parser.parse_args()

    path = Path(args.file)
    if not path.exists():
        print(f"Error: File not found: {path}", file=sys.stderr)
        sys.exit(1)
    try:
        program = load_program(path)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    session = DebugSession(program, args.r0, args.checkpoint, args.signal)
    app = MachineDebugger(session, auto_run=args.run)
    app.run()


if __name__ == "__main__":
    main()
