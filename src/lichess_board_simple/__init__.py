"""
Lichess Board (Simplified) package.

Components:
- sync: turn synchronizer that replays server snapshots and decides when we move
- user_source/engine_source: move sources (an interactive human or a UCI-style subprocess)
- replay/move_parsing: board reconstruction and human move normalization
- lichess_client/session: minimal Lichess Board API transport and game selection
"""
# Package exports are intentionally minimal; import modules directly as needed.
