import pytest

import randgames


class ToyRules:
    """Tiny rules engine: a game ends when "d" is played or after 40 plies."""

    MOVES = ("c", "a", "d", "b")

    def __init__(self):
        self.games_started = 0

    def new_game(self):
        self.games_started += 1
        return []

    def legal_moves(self, state):
        return list(self.MOVES)

    def status(self, state):
        if state and state[-1] == "d":
            return "checkmate"
        if len(state) >= 40:
            return "fifty_moves"
        return randgames.GameStatus.IN_PROGRESS

    def apply_move(self, state, move):
        if move not in self.MOVES:
            raise randgames.MoveApplicationError(f"illegal move {move}")
        state.append(move)
        return self.status(state)

    def notate(self, state, move):
        return f"{move.upper()}{len(state) + 1}"


@pytest.fixture
def toy_rules():
    return ToyRules()


@pytest.fixture
def chess_rules():
    return randgames.ChessRules()
