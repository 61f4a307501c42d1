#!/usr/bin/env python3
"""TinyRAM Command Line Interface.

Assemble and run a TinyRAM program.

Usage:
    python main.py programs/collatz.tr --tape programs/collatz_tape.txt
    python main.py programs/fibonacci.tr --input 10 --trace
"""

import argparse
import logging
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / "src"))

from tinyram import AssemblyFault, ConfigurationError, TinyRAMMachine, load_program, load_tape

EXIT_OK = 0
EXIT_FAULT = 1
EXIT_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="TinyRAM: assembler and virtual machine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Collatz iteration count for 6
    python main.py programs/collatz.tr --input 6

    # Reverse a tape file, with full trace output
    python main.py programs/reverse_tape.tr --tape numbers.txt --trace

    # Guard against non-terminating programs
    python main.py loop.tr --step-limit 100000
        """
    )

    parser.add_argument("program", type=str, help="Path to TinyRAM program (.tr)")
    parser.add_argument("--tape", "-t", type=str, help="Primary tape file (one word per line)")
    parser.add_argument("--aux-tape", "-a", type=str, help="Auxiliary tape file (one word per line)")
    parser.add_argument(
        "--input", "-i",
        type=int,
        nargs="+",
        help="Primary tape words given inline (instead of --tape)"
    )
    parser.add_argument(
        "--step-limit",
        type=int,
        default=None,
        help="Maximum executed instructions before a STEP_LIMIT_EXCEEDED fault"
    )
    parser.add_argument(
        "--memory-words",
        type=int,
        default=None,
        help="Memory size in words"
    )
    parser.add_argument(
        "--show-memory",
        type=int,
        default=16,
        help="Number of leading memory words to print. Default: 16"
    )
    parser.add_argument("--trace", action="store_true", help="Print full execution trace")
    parser.add_argument("--quiet", "-q", action="store_true", help="Print only the halt code")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    return parser


def print_trace(machine: TinyRAMMachine) -> None:
    """Print execution trace in human-readable format."""
    print("=" * 70)
    print("TINYRAM EXECUTION TRACE")
    print("=" * 70)

    for entry in machine.trace:
        status = "OK" if not entry.error else f"FAULT: {entry.error}"
        text = entry.instruction.text if entry.instruction else "<no instruction>"
        print(f"[Step {entry.step}] pc={entry.pc} {text}  {status}")

        pre_regs = entry.pre_state["registers"]
        post_regs = entry.post_state["registers"]
        changes = [f"r{i}: {a} -> {b}" for i, (a, b) in enumerate(zip(pre_regs, post_regs)) if a != b]
        if entry.pre_state["flag"] != entry.post_state["flag"]:
            changes.append(f"flag: {int(entry.pre_state['flag'])} -> {int(entry.post_state['flag'])}")
        if changes:
            print(f"  Changes: {', '.join(changes)}")


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s"
    )

    if args.tape and args.input:
        parser.error("--tape and --input are mutually exclusive")

    program_path = Path(args.program)
    if not program_path.exists():
        print(f"Error: Program file not found: {args.program}", file=sys.stderr)
        return EXIT_ERROR

    try:
        program = load_program(program_path)
        tape0 = load_tape(args.tape) if args.tape else (args.input or [])
        tape1 = load_tape(args.aux_tape) if args.aux_tape else []
        config = program.config.with_overrides(
            memory_words=args.memory_words,
            step_limit=args.step_limit,
            trace=args.trace or None,
        )
        machine = TinyRAMMachine(program, config)
        result = machine.run(tape0, tape1)
    except AssemblyFault as e:
        print(f"Assembly error: {e}", file=sys.stderr)
        return EXIT_ERROR
    except (ConfigurationError, ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR

    if args.trace:
        print_trace(machine)

    if args.quiet:
        print(result.exit_code)
    else:
        print(f"Steps: {result.step_count}")
        if result.fault:
            print(f"Fault: {result.fault}")
        else:
            print(f"Answer: {result.halt_code}")
        print(f"Registers: {' '.join(f'r{i}={v}' for i, v in enumerate(result.registers))}")
        print(f"Flag: {int(result.flag)}")
        print(f"Memory[0:{args.show_memory}]: {result.memory[:args.show_memory]}")

    return EXIT_FAULT if result.fault else EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
