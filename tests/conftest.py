import pytest

from logsync.core import app_state
from logsync.services.events.model import Event, KIND_ACTOR_DEATH, make_event_id


def make_kill(ts, killer="KillerPlayer", killer_id="67890", victim="VictimPlayer",
              victim_id="12345", damage_type="Ballistic", owner="user-1"):
    line = f"{ts} {killer} killed {victim}"
    return Event(
        id=make_event_id(ts, line),
        owner_id=owner,
        timestamp=ts,
        display_text=line,
        source_line=line,
        kind=KIND_ACTOR_DEATH,
        metadata={
            "killerName": killer,
            "killerId": killer_id,
            "victimName": victim,
            "victimId": victim_id,
            "damageType": damage_type,
        },
        emoji='🗡️',
    )


def make_event(event_id, ts, owner="user-1", text="something happened"):
    return Event(id=event_id, owner_id=owner, timestamp=ts, display_text=text)


@pytest.fixture(autouse=True)
def _reset_app_state():
    app_state._shutdown_event.clear()
    app_state.reset_counters()
    yield
    app_state._shutdown_event.clear()
