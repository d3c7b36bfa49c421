#!/usr/bin/env python3
"""
CLI script to control the Fruit Sort game via API calls.
All commands update the backend state, which broadcasts to the frontend via SSE.
"""

import json
import os
import sys

import requests

BASE_URL = os.environ.get("FRUIT_BASE_URL", "http://localhost:8000")
DEFAULT_LEVELS_FILE = "levels.json"


def print_board(state):
    """Print the glasses in play, bottom to top; hidden fruits show as '?'"""
    if not state.get("loaded"):
        print("  (no game loaded)")
        return
    glasses = state["glasses"][: state["active"]]
    for index, stack in enumerate(glasses):
        fruits = ", ".join("?" if f is None else f.replace("fruit_", "") for f in stack)
        marker = "*" if index == state.get("selected") else " "
        print(f" {marker}[{index:2d}] {fruits}")
    print(f"  Moves: {state['moves']}   State: {state['state']}")
    if state.get("obstacles"):
        print(f"  Covers: {json.dumps(state['obstacles'])}")
    if state.get("message"):
        print(f"  {state['message']}")
    if state.get("won"):
        print(f"  Score: {state.get('score')}")


def _report(result):
    if result.get("success"):
        print(f"✓ {result['message']}")
        if result.get("won"):
            print("  🎉 Board solved!")
    else:
        print(f"✗ Error: {result['message']}")
    if "state" in result:
        print_board(result["state"])
    return result


def seed_level_from_file(json_path, problem_id):
    """Load a level produced by generate_level.py into the game"""
    try:
        with open(json_path, 'r') as f:
            levels = json.load(f)
    except FileNotFoundError:
        print(f"✗ Error: Level file '{json_path}' not found")
        return {"success": False, "message": f"File not found: {json_path}"}
    except json.JSONDecodeError as e:
        print(f"✗ Error: Invalid JSON in level file: {e}")
        return {"success": False, "message": f"Invalid JSON: {e}"}

    problem_id_str = str(problem_id)
    if problem_id_str not in levels:
        print(f"✗ Error: Level with problem_id '{problem_id}' not found in file")
        print(f"  Available problem IDs: {', '.join(sorted(levels.keys(), key=int))}")
        return {"success": False, "message": f"Level {problem_id} not found"}

    level = levels[problem_id_str]
    print(f"Loading level '{problem_id}' from file '{json_path}'...")
    print(f"  Glasses: {level['active']}, Difficulty: {level.get('difficulty')}, Covers: {len(level.get('obstacles', {}))}")

    request = {
        "glasses": level["glasses"],
        "active": level["active"],
        "capacity": level.get("capacity", 4),
        "obstacles": level.get("obstacles", {}),
        "difficulty": level.get("difficulty"),
        "seed": level.get("seed"),
    }
    tiers = {"easy": 1, "normal": 2, "hard": 3, "expert": 4, "master": 5}
    if level.get("tier") in tiers:
        request["tier"] = tiers[level["tier"]]

    response = requests.post(f"{BASE_URL}/game/load", json=request)
    return _report(response.json())


def new_game(tier=2, seed=None, daily=None):
    """Start a freshly generated game"""
    print(f"Starting new game (tier {tier})...")
    payload = {"tier": tier, "seed": seed, "daily": daily}
    response = requests.post(f"{BASE_URL}/game/new", json=payload)
    return _report(response.json())


def click_glass(index):
    """Click a glass: first click picks it up, second click pours"""
    print(f"Clicking glass {index}...")
    response = requests.post(f"{BASE_URL}/game/click", json={"index": index})
    return _report(response.json())


def pour(src, dst):
    """Pour from one glass into another"""
    print(f"Pouring {src} -> {dst}...")
    response = requests.post(f"{BASE_URL}/game/pour", json={"src": src, "dst": dst})
    return _report(response.json())


def reset_board():
    """Reset the board to its starting layout"""
    print("Resetting board...")
    response = requests.post(f"{BASE_URL}/game/reset")
    return _report(response.json())


def get_state():
    """Get the current game state"""
    print("Fetching current game state...")
    response = requests.get(f"{BASE_URL}/game/state")
    result = response.json()
    print_board(result)
    return result


def show_scores(date=None):
    """Show the global or daily high-score table"""
    if date:
        response = requests.get(f"{BASE_URL}/scores/daily", params={"date": date})
    else:
        response = requests.get(f"{BASE_URL}/scores")
    entries = response.json()
    title = f"Daily scores for {date}" if date else "High scores"
    print(f"{title}:")
    if not entries:
        print("  (none yet)")
    for rank, entry in enumerate(entries, start=1):
        print(f"  {rank:3d}. {entry['name']:<16} {entry['score']:>6}  {entry['difficulty']}")
    return entries


def submit_score(name, score, diff="normal", date=None):
    """Submit a score to the global table, or the daily one when a date is given"""
    payload = {"name": name, "score": score, "diff": diff}
    url = f"{BASE_URL}/scores"
    if date:
        payload["date"] = date
        url = f"{BASE_URL}/scores/daily"
    result = requests.post(url, json=payload).json()
    if result.get("ok"):
        print("✓ Score saved")
    else:
        print(f"✗ Error: {result.get('error', 'Unknown error')}")
    return result


def show_help():
    """Show available commands"""
    help_text = """
Fruit Sort Game Control CLI
===========================

Available commands:

    python game_control.py new [tier] [seed]
        Start a generated game (tier 1-5, default 2)
        Example: python game_control.py new 3 42

    python game_control.py daily yyyymmdd [tier]
        Start the daily puzzle for a date

    python game_control.py seed [problem_id] [levels_file]
        Load a level from a JSON file written by generate_level.py
        Example: python game_control.py seed 5 levels.json

    python game_control.py state
        Get the current game state

    python game_control.py click index
        Click a glass: the first click picks it up, the second pours

    python game_control.py pour from to
        Pour from one glass into another

    python game_control.py reset
        Reset board to its starting layout

    python game_control.py scores [yyyymmdd]
        Show the high-score table (daily table when a date is given)

    python game_control.py submit name score [diff] [yyyymmdd]
        Submit a score

View the game at: http://localhost:3000

How it works:
    - Pouring moves the run of identical fruits on top of a glass
    - You can only pour onto the same fruit or into an empty glass
    - The board is solved when every glass is empty or holds 4 identical fruits
    - Covered glasses reveal their fruits as you pour out of them
"""
    print(help_text)


if __name__ == "__main__":
    if len(sys.argv) < 2:
        show_help()
        sys.exit(0)

    command = sys.argv[1].lower()

    try:
        if command == "new":
            tier = int(sys.argv[2]) if len(sys.argv) > 2 else 2
            seed = int(sys.argv[3]) if len(sys.argv) > 3 else None
            new_game(tier, seed)

        elif command == "daily":
            if len(sys.argv) < 3:
                print("Error: daily command requires a date (yyyymmdd)")
                sys.exit(1)
            tier = int(sys.argv[3]) if len(sys.argv) > 3 else 2
            new_game(tier, daily=sys.argv[2])

        elif command == "seed":
            if len(sys.argv) < 3:
                print("Error: seed command requires a problem_id")
                print("Example: python game_control.py seed 1")
                sys.exit(1)

            problem_id = int(sys.argv[2])
            levels_file = sys.argv[3] if len(sys.argv) > 3 else DEFAULT_LEVELS_FILE

            if not os.path.exists(levels_file):
                print(f"✗ Error: Level file '{levels_file}' not found")
                print(f"  Looking for: {os.path.abspath(levels_file)}")
                sys.exit(1)

            seed_level_from_file(levels_file, problem_id)

        elif command == "state":
            get_state()

        elif command == "click":
            if len(sys.argv) < 3:
                print("Error: click command requires a glass index")
                sys.exit(1)
            click_glass(int(sys.argv[2]))

        elif command == "pour":
            if len(sys.argv) < 4:
                print("Error: pour command requires source and destination indexes")
                print("Example: python game_control.py pour 0 4")
                sys.exit(1)
            pour(int(sys.argv[2]), int(sys.argv[3]))

        elif command == "reset":
            reset_board()

        elif command == "scores":
            show_scores(sys.argv[2] if len(sys.argv) > 2 else None)

        elif command == "submit":
            if len(sys.argv) < 4:
                print("Error: submit command requires a name and a score")
                sys.exit(1)
            diff = sys.argv[4] if len(sys.argv) > 4 else "normal"
            date = sys.argv[5] if len(sys.argv) > 5 else None
            submit_score(sys.argv[2], int(sys.argv[3]), diff, date)

        elif command == "help":
            show_help()

        else:
            print(f"Unknown command: {command}")
            print("Run 'python game_control.py help' for usage")
            sys.exit(1)

    except requests.exceptions.ConnectionError:
        print("✗ Error: Could not connect to backend server")
        print(f"Make sure the backend is running on {BASE_URL}")
        sys.exit(1)
    except ValueError as e:
        print(f"✗ Error: Invalid argument - {e}")
        sys.exit(1)
