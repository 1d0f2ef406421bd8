"""
S-Language Machine
==================

Interpreter for assembled S programs.

Execution model:
    - State is a mapping variable -> natural number plus a program counter;
      variables never written read as 0.
    - V <- V + 1 and V <- V - 1 change V by one; decrementing 0 leaves 0.
    - if V != 0 goto L jumps to L when V is nonzero. Jumping to a label the
      program does not define halts the machine; this is the usual way to
      exit (``goto E1`` in a program without E1).
    - print / dump write text to a sink and change nothing.
    - The machine halts when the program counter runs past the last
      instruction. The result is the value of y.

The machine imposes no step limit of its own. ``run(max_steps=N)`` lets a
caller stop after N steps; the machine is then still RUNNING and can be
resumed.
"""

import logging
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Callable, Dict, Optional, Sequence

from .assembler import Program
from .instructions import OUTPUT, Instruction, Opcode, Variable, VarKind

logger = logging.getLogger(__name__)

Sink = Callable[[str], None]


class ExecutionState(IntEnum):
    """Machine execution state."""
    RUNNING = 0
    HALTED = 1      # ran past the last instruction
    EXITED = 2      # jumped to a label the program does not define


@dataclass
class State:
    """Variable values and program counter of one run."""
    values: Dict[Variable, int] = field(default_factory=dict)
    pc: int = 0

    @classmethod
    def from_inputs(cls, inputs: Sequence[int]) -> "State":
        """Initial state with x1, x2, ... set from ``inputs``."""
        state = cls()
        for i, value in enumerate(inputs, 1):
            state.set(Variable(VarKind.INPUT, i), value)
        return state

    def get(self, var: Variable) -> int:
        return self.values.get(var, 0)

    def set(self, var: Variable, value: int):
        if value < 0:
            raise ValueError(f"{var} must be a natural number, got {value}")
        self.values[var] = value

    def snapshot(self) -> Dict[str, int]:
        """Values by variable name, y first, then in numbering order."""
        ordered = sorted(self.values, key=lambda var: var.number)
        snap = {str(OUTPUT): self.get(OUTPUT)}
        for var in ordered:
            snap[str(var)] = self.values[var]
        return snap

    def format(self) -> str:
        values = " ".join(f"{name}={value}" for name, value in self.snapshot().items())
        return f"pc={self.pc} {values}"


class Machine:
    """
    S-language machine.

    Each Machine owns its State; run the same Program on several machines
    to get independent runs.
    """

    def __init__(self, program: Program, state: Optional[State] = None,
                 sink: Optional[Sink] = None):
        self.program = program
        self.state = state if state is not None else State()
        self.sink: Sink = sink if sink is not None else print
        self.status = ExecutionState.RUNNING
        self.steps = 0

        # Debug
        self.trace_execution: bool = False

    @property
    def output(self) -> int:
        """Current value of y."""
        return self.state.get(OUTPUT)

    def step(self) -> ExecutionState:
        """Execute one instruction."""
        if self.status != ExecutionState.RUNNING:
            return self.status

        if self.state.pc >= len(self.program):
            self.status = ExecutionState.HALTED
            return self.status

        instr = self.program.instructions[self.state.pc]
        if self.trace_execution:
            logger.debug("step %d pc=%d %s", self.steps, self.state.pc, instr)

        self._execute(instr)
        self.steps += 1

        if self.status == ExecutionState.RUNNING and self.state.pc >= len(self.program):
            self.status = ExecutionState.HALTED
        return self.status

    def run(self, max_steps: Optional[int] = None) -> ExecutionState:
        """Run until the machine halts or ``max_steps`` more steps were taken."""
        taken = 0
        while self.status == ExecutionState.RUNNING:
            if self.state.pc >= len(self.program):
                self.status = ExecutionState.HALTED
                break
            if max_steps is not None and taken >= max_steps:
                logger.info("stopped after %d steps (step bound), pc=%d", taken, self.state.pc)
                return self.status
            self.step()
            taken += 1

        logger.info("%s after %d steps, y=%d", self.status.name.lower(), self.steps, self.output)
        return self.status

    def _execute(self, instr: Instruction):
        op = instr.opcode
        state = self.state

        if op == Opcode.INC:
            state.values[instr.var] = state.get(instr.var) + 1

        elif op == Opcode.DEC:
            value = state.get(instr.var)
            if value > 0:
                state.values[instr.var] = value - 1

        elif op == Opcode.JNZ:
            if state.get(instr.var) != 0:
                target = self.program.labels.get(instr.target)
                if target is None:
                    state.pc = len(self.program)
                    self.status = ExecutionState.EXITED
                else:
                    state.pc = target
                return

        elif op == Opcode.PRINT:
            self.sink(f"{instr.var} = {state.get(instr.var)}")

        elif op == Opcode.DUMP:
            self.sink(state.format())

        state.pc += 1


@dataclass
class RunResult:
    """Outcome of a run."""
    y: int
    steps: int
    status: ExecutionState
    state: State

    @property
    def halted(self) -> bool:
        return self.status != ExecutionState.RUNNING


def run_program(program: Program, inputs: Sequence[int] = (),
                sink: Optional[Sink] = None, max_steps: Optional[int] = None,
                trace: bool = False) -> RunResult:
    """Run a program on inputs x1, x2, ... and return the result."""
    machine = Machine(program, State.from_inputs(inputs), sink)
    machine.trace_execution = trace
    status = machine.run(max_steps)
    return RunResult(machine.output, machine.steps, status, machine.state)
