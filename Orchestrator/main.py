"""
main.py

Entry point and interactive CLI for the case orchestrator.

Usage:
    python -m Orchestrator.main                                  # interactive REPL
    python -m Orchestrator.main --title "Traffic stop" --query "They searched my car"
    python -m Orchestrator.main --persona razor                  # pick a tone
"""

import argparse
import json
import logging
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()

from Orchestrator.config import LOG_FORMAT, LOG_LEVEL
from Orchestrator.errors import OrchestratorError
from Orchestrator.ids import is_case_id
from Orchestrator.state import Persona
from Orchestrator.system import CaseOrchestrator


logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)
logger = logging.getLogger(__name__)

HELP_TEXT = """\
Commands:
  /new <title>        create a case and switch to it
  /switch <case_id>   switch to an existing case
  /cases              list cases
  /persona <name>     strategist | guide | razor | ally
  /history            conversation log of the active case
  /status             system status
  /export             export the active case as JSON
  /lock               lock the active case
  /quit               exit"""


def run_single_query(
    orchestrator: CaseOrchestrator,
    query: str,
    title: str = "Untitled case",
) -> dict:
    """Create a case, run one turn and return a JSON-ready summary."""
    case_id = orchestrator.create_case(title)
    response = orchestrator.send_message(query, case_id)
    orchestrator.wait_for_dispatches(timeout=30)
    chains = orchestrator.coordinator.get_task_chains(case_id)
    return {
        "case_id": case_id,
        "message": response.message,
        "persona": response.persona.value,
        "triggers": response.triggers,
        "trigger_task": (
            response.trigger_task.model_dump(mode="json")
            if response.trigger_task
            else None
        ),
        "chains": [c.model_dump(mode="json") for c in chains],
    }


def _handle_command(orchestrator: CaseOrchestrator, line: str) -> bool:
    """Run one slash command; return ``False`` to leave the loop."""
    command, _, arg = line.partition(" ")
    arg = arg.strip()
    active = orchestrator.registry.get_active_case_id()

    if command in ("/quit", "/exit"):
        return False
    if command == "/new":
        case_id = orchestrator.create_case(arg or "Untitled case")
        print(f"Created and switched to {case_id}")
    elif command == "/switch":
        if not is_case_id(arg):
            print(f"Not a case id: {arg!r}")
        else:
            ok = orchestrator.switch_to_case(arg)
            print(f"Switched to {arg}" if ok else f"Unknown case: {arg}")
    elif command == "/cases":
        for ctx in orchestrator.list_cases():
            marker = "*" if ctx.case_id == active else " "
            lock = " [locked]" if ctx.locked else ""
            print(f" {marker} {ctx.case_id}  {ctx.title}{lock}")
    elif command == "/persona":
        try:
            orchestrator.set_persona(Persona(arg))
            print(f"Persona: {arg}")
        except ValueError:
            print(f"Unknown persona: {arg}")
    elif command == "/history":
        for turn in orchestrator.get_conversation_history(active or ""):
            print(f"\n[You]: {turn.user_input}\n[Assistant]: {turn.response}")
    elif command == "/status":
        print(orchestrator.get_system_status().model_dump_json(indent=2))
    elif command == "/export":
        if active is None:
            print("No active case")
        else:
            print(orchestrator.export_case(active).model_dump_json(indent=2))
    elif command == "/lock":
        if active is not None and orchestrator.lock_case(active):
            print(f"Locked {active}")
    else:
        print(HELP_TEXT)
    return True


def interactive_loop(orchestrator: CaseOrchestrator, title: Optional[str] = None) -> None:
    """Start an interactive REPL against one orchestrator session."""
    print("=" * 60)
    print("  Case Orchestrator - Interactive Mode")
    print("  Type /help for commands, /quit to stop.")
    print("=" * 60)

    if title:
        print(f"Active case: {orchestrator.create_case(title)}")

    while True:
        try:
            line = input("\n[You]: ").strip()
        except (EOFError, KeyboardInterrupt):
            print("\nExiting.")
            break

        if not line:
            continue
        try:
            if line.startswith("/"):
                if not _handle_command(orchestrator, line):
                    print("Exiting.")
                    break
                continue

            case_id = orchestrator.registry.get_active_case_id()
            if case_id is None:
                print("No active case. Use /new <title> first.")
                continue
            response = orchestrator.send_message(line, case_id)
        except OrchestratorError as exc:
            print(f"\n[System]: {exc}")
            continue

        print(f"\n[Assistant]: {response.message}")
        if response.trigger_task:
            print(f"\n  (background task: {response.trigger_task.kind})")


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Case Orchestrator CLI")
    parser.add_argument(
        "--query", "-q",
        type=str,
        default=None,
        help="Single message to run (non-interactive mode)",
    )
    parser.add_argument(
        "--title", "-t",
        type=str,
        default=None,
        help="Title of the case to create",
    )
    parser.add_argument(
        "--persona", "-p",
        choices=[p.value for p in Persona],
        default=None,
        help="Frontline persona",
    )
    args = parser.parse_args(argv)

    with CaseOrchestrator(persona=args.persona) as orchestrator:
        if args.query:
            result = run_single_query(
                orchestrator, args.query, title=args.title or "Untitled case"
            )
            print(json.dumps(result, ensure_ascii=False, indent=2))
        else:
            interactive_loop(orchestrator, title=args.title)


if __name__ == "__main__":
    main()
