from logsync.services.parser import names


def test_prettify_name():
    assert names.prettify_name(None) == names.UNKNOWN_NAME
    assert names.prettify_name("unknown_actor") == names.UNKNOWN_FLAGGED
    assert names.prettify_name("PU_Pilot_01") == names.NPC_NAME
    assert names.prettify_name("NPC_Guard") == names.NPC_NAME
    assert names.prettify_name("TestPlayer") == "TestPlayer"


def test_ship_type():
    assert names.ship_type("AEGS_Gladius_12345") == "gladius"
    assert names.ship_type("ANVL_Hornet_F7C") == "hornet"
    assert names.ship_type("MISC_Prospector_12345") == "MISC_Prospector_12345"
    assert names.ship_type("") == names.UNKNOWN_SHIP
