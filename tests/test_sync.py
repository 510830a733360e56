import unittest
from unittest.mock import MagicMock

import chess

from lichess_board_simple.errors import ReplayError, SubmissionError, TransportError
from lichess_board_simple.sync import (
    TurnSynchronizer,
    extract_moves,
    is_substantive,
)


class RecordingSource:
    """Move source double: returns scripted UCI moves and keeps every board it was shown."""
    name = "Recording"

    def __init__(self, *moves: str):
        self.moves = list(moves)
        self.boards: list[chess.Board] = []
        self.closed = False

    def request_move(self, board: chess.Board) -> chess.Move:
        self.boards.append(board)
        return chess.Move.from_uci(self.moves.pop(0))

    def close(self):
        self.closed = True


def game_state(moves: str, status: str = "started", **extra) -> dict:
    return {"type": "gameState", "moves": moves, "status": status, **extra}


def game_full(moves: str, status: str = "started", **extra) -> dict:
    return {"type": "gameFull", "id": "abcd1234", "state": game_state(moves, status), **extra}


CHAT = {"type": "chatLine", "username": "opponent", "text": "good luck", "room": "player"}


class EventShapeTests(unittest.TestCase):
    def test_move_list_locations(self):
        self.assertEqual(extract_moves(game_state("e2e4 e7e5")), "e2e4 e7e5")
        self.assertEqual(extract_moves(game_full("d2d4")), "d2d4")
        self.assertEqual(extract_moves(game_full("")), "")
        self.assertIsNone(extract_moves(CHAT))
        self.assertIsNone(extract_moves({"type": "opponentGone", "gone": True}))

    def test_substantive_classification(self):
        self.assertTrue(is_substantive(game_state("")))
        self.assertTrue(is_substantive(game_full("e2e4")))
        self.assertFalse(is_substantive(CHAT))
        self.assertFalse(is_substantive({"type": "opponentGone", "gone": True}))


class TurnSynchronizerTests(unittest.TestCase):
    def setUp(self):
        self.session = MagicMock()
        self.session.submit_move.return_value = True

    def _sync(self, side, source) -> TurnSynchronizer:
        return TurnSynchronizer(session=self.session, source=source, side=side, game_id="abcd1234")

    def test_second_mover_asked_once_with_post_e2e4_position(self):
        source = RecordingSource("e7e5")
        sync = self._sync(chess.BLACK, source)
        decision = sync.handle_event(game_full("e2e4"))

        self.assertEqual(len(source.boards), 1)
        expected = chess.Board()
        expected.push_uci("e2e4")
        self.assertEqual(source.boards[0].fen(), expected.fen())
        self.session.submit_move.assert_called_once_with("abcd1234", "e7e5")
        self.assertTrue(decision.our_turn)
        self.assertEqual(decision.move, "e7e5")

    def test_position_not_advanced_on_submission(self):
        source = RecordingSource("e7e5")
        sync = self._sync(chess.BLACK, source)
        sync.handle_event(game_full("e2e4"))
        # still the server-confirmed position; our move waits for the next snapshot
        self.assertEqual(len(sync.board.move_stack), 1)
        self.assertEqual(sync.board.turn, chess.BLACK)

    def test_turn_determinations_follow_replayed_board(self):
        source = RecordingSource("e2e4", "g1f3", "f1c4")
        sync = self._sync(chess.WHITE, source)
        snapshots = [
            game_full(""),
            game_state("e2e4"),
            game_state("e2e4 e7e5"),
            game_state("e2e4 e7e5 g1f3"),
            game_state("e2e4 e7e5 g1f3 b8c6"),
        ]
        for snap in snapshots:
            sync.handle_event(snap)

        to_move = [d.to_move for d in sync.decisions]
        self.assertEqual(to_move, [chess.WHITE, chess.BLACK, chess.WHITE, chess.BLACK, chess.WHITE])
        self.assertEqual([d.our_turn for d in sync.decisions], [True, False, True, False, True])
        self.assertEqual(len(source.boards), 3)
        for board in source.boards:
            self.assertEqual(board.turn, chess.WHITE)

    def test_chat_between_snapshots_changes_nothing(self):
        source = RecordingSource("e7e5")
        sync = self._sync(chess.BLACK, source)
        sync.handle_event(game_full(""))
        before = sync.board.fen()

        self.assertIsNone(sync.handle_event(CHAT))
        self.assertIsNone(sync.handle_event({"type": "opponentGone", "gone": False}))
        self.assertEqual(sync.board.fen(), before)
        self.assertEqual(len(sync.decisions), 1)
        self.assertEqual(source.boards, [])

        sync.handle_event(game_state("e2e4"))
        self.assertEqual(len(source.boards), 1)
        self.session.submit_move.assert_called_once_with("abcd1234", "e7e5")

    def test_corrected_history_is_replayed_from_scratch(self):
        source = RecordingSource("g8f6", "b8c6")
        sync = self._sync(chess.BLACK, source)
        sync.handle_event(game_state("e2e4 e7e5 g1f3"))
        # server resends with a different last move
        sync.handle_event(game_state("e2e4 e7e5 d2d4"))

        expected = chess.Board()
        for uci in ("e2e4", "e7e5", "d2d4"):
            expected.push_uci(uci)
        self.assertEqual(sync.board.fen(), expected.fen())
        self.assertEqual([m.uci() for m in sync.board.move_stack], ["e2e4", "e7e5", "d2d4"])

    def test_shorter_history_rolls_back(self):
        sync = self._sync(chess.WHITE, RecordingSource("g1f3", "d2d4"))
        sync.handle_event(game_state("e2e4 e7e5"))
        sync.handle_event(game_state(""))
        self.assertEqual(sync.board.fen(), chess.Board().fen())

    def test_replay_failure_is_fatal_and_keeps_previous_position(self):
        source = RecordingSource()
        sync = self._sync(chess.WHITE, source)
        sync.handle_event(game_state("e2e4"))
        before = sync.board.fen()

        with self.assertRaises(ReplayError) as ctx:
            sync.handle_event(game_state("e2e4 e7e5 e2e5"))
        self.assertEqual(ctx.exception.token, "e2e5")
        self.assertEqual(ctx.exception.index, 2)
        self.assertEqual(sync.board.fen(), before)
        self.assertEqual(source.boards, [])

    def test_rejected_submission_raises(self):
        self.session.submit_move.return_value = False
        sync = self._sync(chess.WHITE, RecordingSource("e2e4"))
        with self.assertRaises(SubmissionError) as ctx:
            sync.handle_event(game_full(""))
        self.assertEqual(ctx.exception.stage, "submission")

    def test_checkmate_finishes_without_asking_source(self):
        source = RecordingSource()
        sync = self._sync(chess.WHITE, source)
        decision = sync.handle_event(game_state("f2f3 e7e5 g2g4 d8h4"))
        self.assertTrue(decision.finished)
        self.assertEqual(sync.outcome.result, "0-1")
        self.assertEqual(sync.outcome.reason, "checkmate")
        self.assertEqual(source.boards, [])

    def test_server_terminal_status_finishes(self):
        source = RecordingSource()
        sync = self._sync(chess.WHITE, source)
        decision = sync.handle_event(game_state("e2e4", status="resign", winner="white"))
        self.assertTrue(decision.finished)
        self.assertEqual(sync.outcome.result, "1-0")
        self.assertEqual(sync.outcome.reason, "resign")
        self.assertEqual(source.boards, [])

    def test_initial_fen_from_game_full(self):
        fen = "4k3/8/8/8/8/8/4P3/4K3 w - - 0 1"
        source = RecordingSource("e8d7")
        sync = self._sync(chess.BLACK, source)
        sync.handle_event(game_full("", initialFen=fen))
        sync.handle_event(game_state("e2e4"))
        self.assertEqual(sync.board.piece_at(chess.E4), chess.Piece(chess.PAWN, chess.WHITE))
        self.assertIsNone(sync.board.piece_at(chess.D1))

    def test_run_returns_outcome_and_closes_source(self):
        source = RecordingSource("f2f3", "g2g4")
        sync = self._sync(chess.WHITE, source)
        events = iter([
            game_full(""),
            game_state("f2f3"),
            game_state("f2f3 e7e5"),
            CHAT,
            game_state("f2f3 e7e5 g2g4"),
            game_state("f2f3 e7e5 g2g4 d8h4", status="mate", winner="black"),
        ])
        outcome = sync.run(events)
        self.assertEqual(outcome.result, "0-1")
        self.assertTrue(source.closed)
        self.assertEqual(len(source.boards), 2)

    def test_run_stream_closed_early_raises_and_closes_source(self):
        source = RecordingSource("e2e4")
        sync = self._sync(chess.WHITE, source)
        with self.assertRaises(TransportError):
            sync.run(iter([game_full("")]))
        self.assertTrue(source.closed)

    def test_run_closes_source_on_replay_error(self):
        source = RecordingSource()
        sync = self._sync(chess.BLACK, source)
        with self.assertRaises(ReplayError):
            sync.run(iter([game_full("e2e5")]))
        self.assertTrue(source.closed)

    def test_repeated_snapshot_does_not_move_twice(self):
        # the server resends the same history when only flags change (draw offer here)
        self.session.submit_move.side_effect = [True, False]
        source = RecordingSource("e7e5", "g8f6")
        sync = self._sync(chess.BLACK, source)
        sync.handle_event(game_state("e2e4"))
        repeat = sync.handle_event(game_state("e2e4", wdraw=True))
        sync.handle_event(game_state("e2e4 e7e5"))

        self.assertEqual(len(source.boards), 1)
        self.session.submit_move.assert_called_once_with("abcd1234", "e7e5")
        self.assertEqual(len(sync.decisions), 3)
        self.assertTrue(repeat.our_turn)
        self.assertIsNone(repeat.move)
        expected = chess.Board()
        for uci in ("e2e4", "e7e5"):
            expected.push_uci(uci)
        self.assertEqual(sync.board.fen(), expected.fen())

    def test_taken_back_position_is_answered_again(self):
        source = RecordingSource("e2e4", "d2d4")
        sync = self._sync(chess.WHITE, source)
        sync.handle_event(game_full(""))
        sync.handle_event(game_state("e2e4"))
        # takeback: the position we already answered comes back with our move undone
        decision = sync.handle_event(game_state(""))

        self.assertEqual(len(source.boards), 2)
        self.assertEqual(decision.move, "d2d4")
        self.assertEqual(self.session.submit_move.call_count, 2)

    def test_run_reports_first_error_when_close_fails(self):
        source = RecordingSource()
        source.close = MagicMock(side_effect=RuntimeError("engine pipe broken"))
        sync = self._sync(chess.BLACK, source)
        with self.assertLogs("TurnSynchronizer", level="ERROR") as logs:
            with self.assertRaises(ReplayError) as ctx:
                sync.run(iter([game_full("e2e5")]))
        self.assertEqual(ctx.exception.token, "e2e5")
        source.close.assert_called_once_with()
        self.assertIn("Closing move source Recording failed", logs.output[0])

    def test_close_failure_after_normal_end_propagates(self):
        source = RecordingSource()
        source.close = MagicMock(side_effect=RuntimeError("engine pipe broken"))
        sync = self._sync(chess.WHITE, source)
        with self.assertRaises(RuntimeError):
            sync.run(iter([game_state("e2e4", status="resign", winner="black")]))


if __name__ == "__main__":
    unittest.main()
