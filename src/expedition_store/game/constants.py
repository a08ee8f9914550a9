"""Expedition constants."""

# Event name reserved for the expedition-wide replay lockout
REPLAY_TIMER_NAME = "Replay Timer"

# Column sizes (mirrored by the models and the initial migration)
CHARACTER_NAME_MAX_LEN = 64
EXPEDITION_NAME_MAX_LEN = 128
EVENT_NAME_MAX_LEN = 256
EXPEDITION_UUID_LEN = 36

# Roster bounds accepted on create
EXPEDITION_MIN_PLAYERS_FLOOR = 0
EXPEDITION_MAX_PLAYERS_CAP = 72
