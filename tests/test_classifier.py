from logsync.services.events import model
from logsync.services.parser import classifier
from logsync.services.parser.classifier import ClassifierSession, classify_line, classify_lines

OWNER = "user-1"
PLAYER = ClassifierSession(player_name="TestPlayer", player_id="12345")

LOGIN = "<2024.01.01-12:00:00.000> AccountLoginCharacterStatus_Character - name TestPlayer EntityId[12345]"
OTHER_DEATH = (
    "<2024.06.07-12:34:56:789> <Actor Death> CActor::Kill: 'VictimPlayer' [12345] in zone 'Stanton_Crusader' "
    "killed by 'KillerPlayer' [67890] using 'wpn_rifle_ballistic_01' [Class Ballistic_Rifle] "
    "with damage type 'Ballistic' from direction x: 1.0, y: 0.5, z: -0.3"
)
SELF_DEATH = (
    "<2024.06.07-12:40:00:000> <Actor Death> CActor::Kill: 'TestPlayer' [12345] in zone 'Stanton_Crusader' "
    "killed by 'KillerPlayer' [67890] using 'wpn_rifle' [Class Rifle] "
    "with damage type 'Ballistic' from direction x: 1.0, y: 0.0, z: 0.0"
)
NPC_DEATH = (
    "<2024.06.07-12:34:56:789> <Actor Death> CActor::Kill: 'PU_SecurityGuard_01' [12345] in zone 'Stanton_ArcCorp' "
    "killed by 'PlayerName' [67890] using 'wpn_pistol' [Class Ballistic_Pistol] "
    "with damage type 'Ballistic' from direction x: 1.0, y: 0.0, z: 0.0"
)
VEHICLE_DESTRUCTION = (
    "<2024.06.07-12:34:56:789> <Vehicle Destruction> Vehicle 'AEGS_Gladius_12345' [12345] "
    "caused by 'EnemyPlayer' [67890] destroyLevel from 'None' to 'HardDeath'"
)
INVENTORY = "<2024.06.07-12:34:56:789> <RequestLocationInventory> Player[TestPlayer] Location[Port_Olisar]"
BOARDING = "<2024.06.07-12:34:56:789> <Vehicle Control Flow> EntitySpawner spawned vehicle 'AEGS_Gladius_1' [12345]"


def test_login_updates_session_and_emits_event():
    result = classify_line(LOGIN, ClassifierSession(), OWNER)
    assert result.session.player_name == "TestPlayer"
    assert result.session.player_id == "12345"
    assert result.identity_changed
    assert result.event.kind == model.KIND_LOGIN
    assert result.event.timestamp == "2024-01-01T12:00:00.000Z"
    assert result.event.owner_id == OWNER


def test_repeated_login_is_not_an_identity_change():
    result = classify_line(LOGIN, PLAYER, OWNER)
    assert not result.identity_changed


def test_other_death_metadata():
    event = classify_line(OTHER_DEATH, PLAYER, OWNER).event
    assert event.kind == model.KIND_ACTOR_DEATH
    assert event.emoji == '🗡️'
    assert event.metadata["victimName"] == "VictimPlayer"
    assert event.metadata["killerId"] == "67890"
    assert event.metadata["damageType"] == "Ballistic"
    assert event.metadata["direction"] == {"x": "1.0", "y": "0.5", "z": "-0.3"}


def test_self_death_routes_to_self_handler():
    event = classify_line(SELF_DEATH, PLAYER, OWNER).event
    assert event.emoji == '💀'
    assert "TestPlayer was killed by KillerPlayer" in event.display_text


def test_same_line_is_other_death_without_session():
    event = classify_line(SELF_DEATH, ClassifierSession(), OWNER).event
    assert event.emoji == '🗡️'


def test_npc_victim_is_prettified():
    event = classify_line(NPC_DEATH, PLAYER, OWNER).event
    assert "🤖 NPC" in event.display_text
    assert event.metadata["victimName"] == "PU_SecurityGuard_01"


def test_truncated_actor_death_is_a_miss():
    line = "<2024.01.01-12:00:00.000> <Actor Death> CActor::Kill..."
    assert classify_line(line, PLAYER, OWNER).event is None


def test_vehicle_destruction():
    event = classify_line(VEHICLE_DESTRUCTION, PLAYER, OWNER).event
    assert event.kind == model.KIND_DESTRUCTION
    assert event.metadata["shipType"] == "gladius"
    assert event.metadata["destroyLevelTo"] == "HardDeath"


def test_vehicle_destruction_missing_parts_is_a_miss():
    line = "<2024.01.01-12:00:00.000> <Vehicle Destruction> Vehicle destroyed"
    assert classify_line(line, PLAYER, OWNER).event is None


def test_inventory_only_for_current_player():
    assert classify_line(INVENTORY, PLAYER, OWNER).event.kind == model.KIND_INVENTORY
    other = ClassifierSession(player_name="SomeoneElse")
    assert classify_line(INVENTORY, other, OWNER).event is None


def test_boarding():
    event = classify_line(BOARDING, PLAYER, OWNER).event
    assert event.kind == model.KIND_VEHICLE_CONTROL_FLOW
    assert event.metadata == {"vehicleName": "AEGS_Gladius", "vehicleId": "12345", "shipType": "gladius"}


def test_system_quit_and_ship_destruction():
    quit_event = classify_line("<2024.01.01-12:00:00.000> <SystemQuit> Player quit", PLAYER, OWNER).event
    assert quit_event.kind == model.KIND_SYSTEM_QUIT
    ship = classify_line("<2024.01.01-12:00:00.000> <Ship Destruction> Ship destroyed", PLAYER, OWNER).event
    assert ship.kind == model.KIND_SHIP_DESTRUCTION
    assert ship.display_text == "Ship destruction: Ship destroyed"


def test_unmatched_line_yields_nothing():
    result = classify_line("<2024.01.01-12:00:00.000> [Notice] nothing to see", PLAYER, OWNER)
    assert result.event is None
    assert result.session == PLAYER


def test_ids_are_deterministic():
    first = classify_line(OTHER_DEATH, PLAYER, OWNER).event
    second = classify_line(OTHER_DEATH, PLAYER, OWNER).event
    assert first.id == second.id


def test_cutoff_discards_older_events_but_keeps_session():
    result = classify_line(LOGIN, ClassifierSession(), OWNER, cutoff="2024-06-01T00:00:00.000Z")
    assert result.event is None
    assert result.session.player_name == "TestPlayer"


def test_classify_lines_threads_session():
    events, session, changed = classify_lines([LOGIN, INVENTORY, "garbage"], ClassifierSession(), OWNER)
    assert [e.kind for e in events] == [model.KIND_LOGIN, model.KIND_INVENTORY]
    assert session.player_name == "TestPlayer"
    assert changed


def test_matchers_are_ordered():
    assert classifier._EVENT_MATCHERS.index(classifier._match_self_death) < \
        classifier._EVENT_MATCHERS.index(classifier._match_other_death)
