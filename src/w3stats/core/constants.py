"""
Constants for W3Stats.

File suffixes, sentinel keys and defaults shared by the cache gate,
the library scanner and the statistics aggregator.
"""

# ============================================================================
# File Suffixes
# ============================================================================

# Warcraft III replay files
REPLAY_SUFFIX = ".w3g"

# JSON sidecar written next to each replay
ANALYSIS_SUFFIX = ".w3g_analysis.json"

# Map file extensions stripped from map identifiers in previews
MAP_EXTENSIONS = (".w3x", ".w3m")

# Indent used when persisting analysis artifacts
ARTIFACT_JSON_INDENT = 2

# ============================================================================
# Analysis Record Keys
# ============================================================================

# Key inside a player's heroes map that holds pick ordering, not a hero
HERO_ORDER_KEY = "order"

# Team id the decoder assigns to observers
OBSERVER_TEAM = 12

# Label used when neither race nor detected race is known
UNKNOWN_RACE = "Unknown"

# Map label used when the artifact has no map identifier
UNKNOWN_MAP = "Unknown"

# ============================================================================
# Defaults
# ============================================================================

DEFAULT_REPLAY_ROOT = "replay"
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 3000
