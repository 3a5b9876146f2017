from __future__ import annotations
import json
import os
import sys
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from config import InterpreterConfig
from faults import PBrainFault, UnknownFault, UnmatchedBracket, format_diagnostic
from procedures import ProcedureTable
from tape import Tape
from unitio import StreamInput, StreamOutput


@dataclass
class Frame:
    name: str
    frame_id: str
    key: Optional[int]


@dataclass
class StateEntry:
    step_index: int
    state_id: str
    frame_id: Optional[str]
    rule: str
    cursor: int
    cell: int
    detail: Optional[Dict[str, Any]]


class StateLogger:
    def __init__(self, verbose: bool) -> None:
        self.verbose = verbose
        self.entries: List[StateEntry] = []
        self.next_state_index = 0
        self.last_state_id = "seed"
        self.frame_last_entry: Dict[str, StateEntry] = {}

    def record(
        self,
        *,
        frame: Optional[Frame],
        rule: str,
        cursor: int,
        cell: int,
        detail: Optional[Dict[str, Any]] = None,
    ) -> Optional[StateEntry]:
        # Construct-level events only, and only when asked for; per-instruction
        # logging would dominate the run time of any real program.
        if not self.verbose:
            return None
        step_index = self.next_state_index
        state_id = f"s_{step_index:06d}"
        entry = StateEntry(
            step_index=step_index,
            state_id=state_id,
            frame_id=frame.frame_id if frame else None,
            rule=rule,
            cursor=cursor,
            cell=cell,
            detail=detail,
        )
        self.entries.append(entry)
        if frame:
            self.frame_last_entry[frame.frame_id] = entry
        self.last_state_id = state_id
        self.next_state_index += 1
        return entry

    def last_entry_for_frame(self, frame_id: str) -> Optional[StateEntry]:
        return self.frame_last_entry.get(frame_id)


def find_matching_bracket(code: str, open_index: int, end: int) -> int:
    """Return the index of the ']' closing the '[' at open_index.

    Only the half-open range up to end is searched. Parentheses are not
    special here: a bracket inside a procedure body counts like any other.
    """
    depth = 0
    i = open_index + 1
    while i < end:
        ch = code[i]
        if ch == "[":
            depth += 1
        elif ch == "]":
            if depth == 0:
                return i
            depth -= 1
        i += 1
    raise UnmatchedBracket(open_index)


class Interpreter:
    def __init__(
        self,
        *,
        source: str,
        filename: str = "<string>",
        config: Optional[InterpreterConfig] = None,
        input_unit: Optional[Any] = None,
        output_unit: Optional[Any] = None,
        verbose: bool = False,
    ) -> None:
        self.source = source
        self.filename = filename if filename in ("<string>", "<stdin>") else os.path.abspath(filename)
        self.config = (config or InterpreterConfig()).validate()
        self.verbose = verbose
        self.tape = Tape(
            self.config.tape_size,
            cell_bits=self.config.cell_bits,
            growable=self.config.growable,
            max_cells=self.config.max_cells,
        )
        self.procedures = ProcedureTable(policy=self.config.redefine)
        self.input_unit = input_unit or StreamInput(sys.stdin.buffer, self.config.unit)
        self.output_unit = output_unit or StreamOutput(sys.stdout.buffer, self.config.unit)
        self.logger = StateLogger(verbose=verbose)
        self.call_stack: List[Frame] = []
        self.frame_counter = 0
        # Matches already found, keyed by (code, open_index, end). Only
        # successful scans are cached so an unmatched '[' faults every time.
        self._bracket_cache: Dict[Tuple[str, int, int], int] = {}

    def run(self) -> None:
        frame = self._new_frame("<top-level>", None)
        self.call_stack.append(frame)
        self._log_step(rule="SEED", detail={"file": self.filename, "length": len(self.source)})
        try:
            self._interpret(self.source, 0, len(self.source))
        except PBrainFault as fault:
            self._stamp_fault(fault)
            raise
        except RecursionError:
            wrapped = UnknownFault("Procedure call depth exhausted")
            self._stamp_fault(wrapped)
            raise wrapped
        except Exception as exc:
            # Anything the engine did not raise itself is reported as an
            # unknown fault, never as a Python traceback.
            wrapped = UnknownFault(f"Internal interpreter error: {exc}")
            self._stamp_fault(wrapped)
            raise wrapped
        else:
            self.call_stack.pop()
        finally:
            self.output_unit.flush()

    def _stamp_fault(self, fault: PBrainFault) -> None:
        if fault.cell is None:
            fault.cell = self.tape.cursor
        self._log_step(rule="FAULT", detail={"diagnostic": format_diagnostic(fault), "message": fault.message})
        if self.logger.entries:
            fault.step_index = self.logger.entries[-1].step_index

    def _interpret(self, code: str, start: int, end: int) -> None:
        tape = self.tape
        verbose = self.verbose
        i = start
        while i < end:
            ch = code[i]
            if ch == "+":
                tape.inc()
            elif ch == "-":
                tape.dec()
            elif ch == ">":
                grown = tape.grow_count
                tape.right()
                if verbose and tape.grow_count != grown:
                    self._log_step(rule="GROW", detail={"capacity": tape.capacity})
            elif ch == "<":
                tape.left()
            elif ch == ".":
                self.output_unit.write(tape.current())
            elif ch == ",":
                # A prompt written by the program must be visible before we block.
                self.output_unit.flush()
                tape.set(self.input_unit.read())
            elif ch == "[":
                close = self._match_bracket(code, i, end)
                self._execute_loop(code, i + 1, close)
                i = close
            elif ch == "(":
                i = self._define_procedure(code, i + 1, end)
            elif ch == ":":
                self._call_procedure()
            i += 1

    def _match_bracket(self, code: str, open_index: int, end: int) -> int:
        key = (code, open_index, end)
        close = self._bracket_cache.get(key)
        if close is None:
            close = find_matching_bracket(code, open_index, end)
            self._bracket_cache[key] = close
        return close

    def _execute_loop(self, code: str, start: int, end: int) -> None:
        tape = self.tape
        if self.verbose:
            self._log_step(rule="LOOP", detail={"body": code[start:end]})
        while tape.current() != 0:
            self._interpret(code, start, end)

    def _define_procedure(self, code: str, start: int, end: int) -> int:
        # Bodies do not nest: the first ')' ends the definition. Without one
        # the body runs to the end of the enclosing range.
        close = code.find(")", start, end)
        if close == -1:
            close = end
        key = self.tape.current()
        stored = self.procedures.define(key, code[start:close])
        if self.verbose:
            self._log_step(rule="DEFINE", detail={"key": key, "body": code[start:close], "stored": stored})
        return close

    def _call_procedure(self) -> None:
        key = self.tape.current()
        body = self.procedures.lookup(key)
        if self.verbose:
            self._log_step(rule="CALL", detail={"key": key})
        frame = self._new_frame(f"procedure {key}", key)
        self.call_stack.append(frame)
        self._interpret(body, 0, len(body))
        # Left in place on a fault so the traceback can show it.
        self.call_stack.pop()

    def _new_frame(self, name: str, key: Optional[int]) -> Frame:
        frame_id = f"f_{self.frame_counter:04d}"
        self.frame_counter += 1
        return Frame(name=name, frame_id=frame_id, key=key)

    def _log_step(self, *, rule: str, detail: Optional[Dict[str, Any]] = None) -> None:
        frame = self.call_stack[-1] if self.call_stack else None
        self.logger.record(
            frame=frame,
            rule=rule,
            cursor=self.tape.cursor,
            cell=self.tape.current(),
            detail=detail,
        )


@dataclass
class TracebackFrame:
    name: str
    key: Optional[int]
    state_entry: Optional[StateEntry]


class TracebackFormatter:
    def __init__(self, interpreter: Interpreter) -> None:
        self.interpreter = interpreter

    def build_frames(self) -> List[TracebackFrame]:
        frames: List[TracebackFrame] = []
        for frame in self.interpreter.call_stack:
            entry = self.interpreter.logger.last_entry_for_frame(frame.frame_id)
            frames.append(TracebackFrame(name=frame.name, key=frame.key, state_entry=entry))
        return frames

    def format_text(self, fault: PBrainFault, verbose: bool) -> str:
        lines = ["Traceback (most recent call last):"]
        previous: Optional[str] = None
        repeated = 0
        for frame in self.build_frames():
            if frame.name == previous:
                repeated += 1
                continue
            if repeated:
                lines.append(f"  [Previous frame repeated {repeated} more times]")
                repeated = 0
            previous = frame.name
            lines.append(f"  File \"{self.interpreter.filename}\", in {frame.name}")
            if frame.state_entry:
                lines.append(
                    f"    State log index: {frame.state_entry.step_index}  State id: {frame.state_entry.state_id}"
                )
                if verbose:
                    lines.append(
                        f"    Last event: {frame.state_entry.rule} at cell {frame.state_entry.cursor} "
                        f"(value {frame.state_entry.cell})"
                    )
        if repeated:
            lines.append(f"  [Previous frame repeated {repeated} more times]")
        lines.append(f"{fault.__class__.__name__}: {fault.message} ({format_diagnostic(fault)})")
        return "\n".join(lines)

    def to_json(self, fault: PBrainFault) -> str:
        frames_json: List[Dict[str, Any]] = []
        for index, frame in enumerate(self.build_frames()):
            entry: Dict[str, Any] = {"frame_index": index, "name": frame.name}
            if frame.key is not None:
                entry["key"] = frame.key
            if frame.state_entry:
                entry["state_id"] = frame.state_entry.state_id
                entry["step_index"] = frame.state_entry.step_index
                entry["rule"] = frame.state_entry.rule
                if frame.state_entry.detail is not None:
                    entry["detail"] = frame.state_entry.detail
            frames_json.append(entry)
        data = {
            "error": {
                "type": fault.__class__.__name__,
                "code": int(fault.code),
                "cell": fault.cell,
                "message": fault.message,
                "failing_step_index": fault.step_index,
            },
            "traceback": frames_json,
        }
        return json.dumps(data, indent=2)
