"""Tests for the command executor."""

from lighthouse_game import (
    PUZZLE_KEYS,
    SECRET_PASSWORD,
    Verb,
    execute,
    item_locations,
    new_game_state,
    normalize_item_name,
    parse_command,
    readable_item_name,
    room_items,
)


def _run(state, *commands):
    for command in commands:
        state = execute(command, state).state
    return state


def _assert_items_placed_once(state):
    for item_id, places in item_locations(state).items():
        assert len(places) == 1, f"{item_id} found in {places}"


def test_new_game_defaults(state):
    assert state.current_room_id == "pier"
    assert state.inventory == []
    assert not any(state.puzzle_progress.values())
    assert set(state.puzzle_progress) == set(PUZZLE_KEYS)
    assert state.game_complete is False
    assert state.password is None
    assert state.flags["visited_pier"] is True
    assert room_items(state, "beach") == ["lantern"]
    assert room_items(state, "lighthouseExterior") == ["smallKey"]


def test_parse_command_verbs():
    assert parse_command("LOOK").verb is Verb.LOOK
    assert parse_command("l").verb is Verb.LOOK
    assert parse_command("get Lantern").verb is Verb.TAKE
    assert parse_command("get Lantern").argument == "lantern"
    assert parse_command("i").verb is Verb.INVENTORY
    assert parse_command("x key").verb is Verb.EXAMINE
    assert parse_command("dance wildly").verb is Verb.UNKNOWN
    assert parse_command("").verb is Verb.UNKNOWN


def test_bare_direction_is_go():
    cmd = parse_command("north")
    assert cmd.verb is Verb.GO
    assert cmd.argument == "north"


def test_look_changes_nothing(state):
    result = execute("look", state)
    assert result.success
    assert result.state == state
    assert "Old Pier" in result.message


def test_execute_does_not_mutate_input(state):
    result = execute("go north", state)
    assert result.state.current_room_id == "beach"
    assert state.current_room_id == "pier"


def test_go_valid_exit(state):
    result = execute("go north", state)
    assert result.success
    assert result.state.current_room_id == "beach"
    assert result.state.flags["visited_beach"] is True


def test_go_missing_exit_leaves_state(state):
    result = execute("go west", state)
    assert not result.success
    assert result.outcome == "no_exit"
    assert result.state == state


def test_go_without_direction(state):
    result = execute("go", state)
    assert not result.success
    assert result.outcome == "no_direction"


def test_locked_door_blocks_interior(state):
    state = _run(state, "north", "north")
    result = execute("go inside", state)
    assert not result.success
    assert result.outcome == "door_locked"
    assert result.state.current_room_id == "lighthouseExterior"


def test_unlocked_door_always_opens(state):
    state = _run(state, "north", "north", "take key", "use key")
    for _ in range(2):
        result = execute("in", state)
        assert result.success
        assert result.state.current_room_id == "lighthouseInterior"
        state = execute("down", result.state).state


def test_take_moves_item(state):
    state = _run(state, "go north")
    result = execute("take lantern", state)
    assert result.success
    assert result.state.inventory == ["lantern"]
    assert room_items(result.state, "beach") == []
    assert result.state.puzzle_progress["foundLantern"] is True
    _assert_items_placed_once(result.state)


def test_take_item_not_here(state):
    result = execute("take lantern", state)
    assert not result.success
    assert result.outcome == "not_here"
    assert result.state.inventory == []


def test_take_twice_does_not_duplicate(state):
    state = _run(state, "go north", "take lantern")
    result = execute("take lantern", state)
    assert not result.success
    assert result.state.inventory == ["lantern"]
    _assert_items_placed_once(result.state)


def test_take_unknown_word(state):
    result = execute("take seaweed", _run(state, "go north"))
    assert not result.success
    assert result.outcome == "unknown_item"


def test_inventory_listing(state):
    assert "not carrying" in execute("inventory", state).message
    state = _run(state, "go north", "take lamp")
    result = execute("inv", state)
    assert result.success
    assert "lantern" in result.message


def test_examine_requires_presence(state):
    assert not execute("examine key", state).success
    state = _run(state, "north", "north")
    result = execute("x key", state)
    assert result.success
    assert "L.F." in result.message


def test_use_requires_inventory(state):
    result = execute("use lantern", _run(state, "north"))
    assert not result.success
    assert result.outcome == "not_carrying"


def test_use_key_twice_is_idempotent(state):
    state = _run(state, "north", "north", "take key")
    first = execute("use key", state)
    second = execute("use key", first.state)
    assert first.success and second.success
    assert second.outcome == "door_already_unlocked"
    assert second.state.flags["lighthouseDoorUnlocked"] is True
    assert second.state.puzzle_progress["unlockedDoor"] is True


def test_use_key_elsewhere_has_no_effect(state):
    state = _run(state, "north", "north", "take key", "south")
    result = execute("use key", state)
    assert result.success
    assert result.outcome == "no_effect"
    assert result.state.flags["lighthouseDoorUnlocked"] is False


def test_unlit_lantern_fails_at_top(state):
    state = _run(state, "north", "take lantern", "north", "take key", "use key", "inside", "up")
    assert state.current_room_id == "lighthouseTop"
    result = execute("use lantern", state)
    assert not result.success
    assert result.outcome == "lantern_unlit"
    assert result.state.puzzle_progress["litBeacon"] is False
    assert result.state.game_complete is False


def test_help(state):
    result = execute("help", state)
    assert result.success
    assert "take <item>" in result.message


def test_unknown_verb(state):
    result = execute("sing a shanty", state)
    assert not result.success
    assert result.outcome == "unknown_command"
    assert result.state == state


def test_item_synonyms_are_locale_aware():
    assert normalize_item_name("the key") == "smallKey"
    assert normalize_item_name("anahtar", "tr") == "smallKey"
    assert normalize_item_name("fener", "tr") == "lantern"
    # the other locale is still understood
    assert normalize_item_name("lamba", "en") == "lantern"
    assert normalize_item_name("driftwood") is None
    assert readable_item_name("smallKey", "tr") == "küçük anahtar"


def test_turkish_messages():
    state = new_game_state("tr")
    result = execute("go west", state)
    assert "gidemezsin" in result.message
    assert "Eski İskele" in execute("look", state).message


def test_walkthrough_completes_game(state):
    steps = [
        ("go north", lambda s: s.current_room_id == "beach"),
        ("take lantern", lambda s: s.inventory == ["lantern"] and room_items(s, "beach") == []),
        ("use lantern", lambda s: s.flags["lanternLit"] and s.puzzle_progress["litLantern"]),
        ("go north", lambda s: s.current_room_id == "lighthouseExterior"),
        ("take key", lambda s: s.inventory == ["lantern", "smallKey"]),
        ("use key", lambda s: s.flags["lighthouseDoorUnlocked"]),
        ("go inside", lambda s: s.current_room_id == "lighthouseInterior"),
        ("go up", lambda s: s.current_room_id == "lighthouseTop" and s.puzzle_progress["reachedTop"]),
    ]
    for command, check in steps:
        result = execute(command, state)
        assert result.success, command
        state = result.state
        assert check(state), command
        assert state.game_complete is False
        _assert_items_placed_once(state)

    result = execute("use lantern", state)
    assert result.success
    assert result.outcome == "beacon_lit"
    assert result.state.puzzle_progress["litBeacon"] is True
    assert result.state.game_complete is True
    assert result.state.password == SECRET_PASSWORD

    again = execute("use lantern", result.state)
    assert again.success
    assert again.outcome == "beacon_already_lit"
    assert again.state.game_complete is True
    assert again.state.password == SECRET_PASSWORD


def test_completion_never_reverts(state):
    state = _run(
        state,
        "north", "take lantern", "use lantern", "north", "take key",
        "use key", "inside", "up", "use lantern",
    )
    assert state.game_complete
    for command in ("down", "down", "go west", "dance", "look"):
        state = execute(command, state).state
        assert state.game_complete is True
