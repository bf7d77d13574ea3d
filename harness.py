"""
Interactive harness for exploring a vault's task index without the server.

Usage:
    python harness.py <VAULT_ROOT> [--exclude .git,.obsidian]

Loads every document into a TaskIndex, prints a short smoke test, then drops
you into a REPL where you can query and edit tasks directly.
"""

import asyncio
import json
import sys
from pathlib import Path

# Add src/ to path so imports work
sys.path.insert(0, str(Path(__file__).parent / "src"))

from api.task_handlers import (
    TaskServices,
    handle_index_status,
    handle_redo,
    handle_task_follow_up,
    handle_task_get,
    handle_task_list,
    handle_task_set_status,
    handle_undo,
)
from documents.file_document import discover_documents
from models.settings import TaskPlannerSettings
from models.task import TaskStatus


def _print_task(t: dict, depth: int = 0) -> None:
    indent = "  " * depth
    tags = " ".join(f"#{tag}" for tag in t["tags"])
    attrs = " ".join(f"{k}={v}" for k, v in t["attributes"].items())
    print(f"  {indent}[{t['status']:18s}] {t['document']}:{t['line']}  {t['text']}  {tags} {attrs}")
    for child in t.get("subtasks", []):
        _print_task(child, depth + 1)


def smoke_test(services: TaskServices) -> None:
    """Quick automated checks after loading."""
    st = handle_index_status(services)
    print("\n=== Smoke Test ===")
    print(f"  Documents indexed: {st['documents_indexed']}")
    print(f"  Tasks indexed:     {st['tasks_indexed']}")
    print(f"  Root tasks:        {st['root_tasks']}")
    print(f"  Ignored folders:   {st['ignored_folders']}")

    for status in TaskStatus:
        tasks = handle_task_list(services, status=status.name.lower())
        print(f"\n  {status.name.lower()} (first 5 of {len(tasks)}):")
        for t in tasks[:5]:
            _print_task(t)

    print("\n=== Smoke Test Complete ===\n")


def repl(services: TaskServices) -> None:
    """Simple REPL for interactive exploration."""
    print("Interactive mode. Type 'help' for commands, 'quit' to exit.\n")

    commands = {
        "help":     "Show this help",
        "status":   "Show index status",
        "tasks":    "List tasks. Usage: tasks [status=todo,in_progress] [document=path.md]",
        "task":     "Get one task. Usage: task <document> <line>",
        "set":      "Change status. Usage: set <document> <line> <status>",
        "followup": "Create a follow-up. Usage: followup <document> <line> [due-date]",
        "undo":     "Undo the last status or attribute change",
        "redo":     "Redo the last undone change",
        "find":     "Search task text. Usage: find <substring>",
        "quit":     "Exit",
    }

    while True:
        try:
            line = input("vault-tasks> ").strip()
        except (EOFError, KeyboardInterrupt):
            print()
            break

        if not line:
            continue

        parts = line.split()
        cmd = parts[0].lower()

        try:
            if cmd == "quit" or cmd == "exit":
                break

            elif cmd == "help":
                for k, v in commands.items():
                    print(f"  {k:12s} {v}")

            elif cmd == "status":
                print(json.dumps(handle_index_status(services), indent=2))

            elif cmd == "tasks":
                kwargs = {}
                for arg in parts[1:]:
                    if "=" in arg:
                        k, v = arg.split("=", 1)
                        kwargs[k] = v
                results = handle_task_list(services, **kwargs)
                print(f"Found {len(results)} tasks:")
                for t in results:
                    _print_task(t)

            elif cmd == "task":
                if len(parts) < 3:
                    print("Usage: task <document> <line>")
                    continue
                print(json.dumps(
                    handle_task_get(services, document_id=parts[1], line=int(parts[2])),
                    indent=2,
                ))

            elif cmd == "set":
                if len(parts) < 4:
                    print("Usage: set <document> <line> <status>")
                    continue
                result = asyncio.run(handle_task_set_status(
                    services, document_id=parts[1], line=int(parts[2]), status=parts[3]
                ))
                print(json.dumps(result, indent=2))

            elif cmd == "followup":
                if len(parts) < 3:
                    print("Usage: followup <document> <line> [due-date]")
                    continue
                due = parts[3] if len(parts) > 3 else None
                result = asyncio.run(handle_task_follow_up(
                    services, document_id=parts[1], line=int(parts[2]), due_date=due
                ))
                print(json.dumps(result, indent=2))

            elif cmd == "undo":
                print(json.dumps(asyncio.run(handle_undo(services)), indent=2))

            elif cmd == "redo":
                print(json.dumps(asyncio.run(handle_redo(services)), indent=2))

            elif cmd == "find":
                if len(parts) < 2:
                    print("Usage: find <substring>")
                    continue
                needle = " ".join(parts[1:]).lower()
                matches = [
                    task for root in services.index.tasks for task in root.all_tasks()
                    if needle in task.text.lower()
                ]
                print(f"Found {len(matches)} matching tasks:")
                for t in matches:
                    print(f"  [{t.status.name.lower():18s}] {t.task_id}")

            else:
                print(f"Unknown command: {cmd}. Type 'help' for available commands.")

        except Exception as e:
            print(f"  Error: {e}")


def main():
    if len(sys.argv) < 2:
        print("Usage: python harness.py <VAULT_ROOT> [--exclude .git,.obsidian]")
        sys.exit(1)

    vault_root = Path(sys.argv[1]).resolve()
    if not vault_root.is_dir():
        print(f"Error: {vault_root} is not a directory")
        sys.exit(1)

    exclude_dirs = {".git", ".obsidian", "node_modules", ".trash"}
    args = sys.argv[2:]
    if "--exclude" in args:
        i = args.index("--exclude")
        if i + 1 < len(args):
            exclude_dirs = set(args[i + 1].split(","))

    print(f"Loading tasks from: {vault_root}")
    print(f"Exclude dirs: {exclude_dirs}")

    services = TaskServices.from_settings(TaskPlannerSettings.from_env())
    asyncio.run(services.index.load_all(discover_documents(vault_root, exclude_dirs)))

    smoke_test(services)
    repl(services)

    print("Done.")


if __name__ == "__main__":
    main()
