"""Game.log line parsing: timestamps, names and event classification."""
