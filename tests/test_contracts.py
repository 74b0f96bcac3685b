from carioca.cards import Card, Suit
from carioca.contracts import ROUND_CONTRACTS, validate_additional_down, validate_contract

SUITS = {"H": Suit.HEART, "D": Suit.DIAMOND, "C": Suit.CLUB, "S": Suit.SPADE}


def c(code: str, deck: int = 0) -> Card:
    value = int(code[1:])
    return Card(f"{code[0]}{value}-{deck}", SUITS[code[0]], value)


JOKER = Card("JOKER-0-0", Suit.JOKER, 0)


def test_contract_table():
    assert sorted(ROUND_CONTRACTS) == list(range(1, 9))
    assert (ROUND_CONTRACTS[2].trios, ROUND_CONTRACTS[2].trio_size) == (2, 3)
    assert (ROUND_CONTRACTS[7].trios, ROUND_CONTRACTS[7].trio_size) == (1, 6)
    assert (ROUND_CONTRACTS[8].escalas, ROUND_CONTRACTS[8].escala_size) == (1, 7)


def test_round_one_accepts_exactly_one_trio():
    trio = [c("H5"), c("D5"), c("C5")]
    assert validate_contract([trio], 1).valid
    assert validate_contract([trio + [c("S5")]], 1).valid

    result = validate_contract([trio, [c("H9"), c("D9"), c("C9")]], 1)
    assert not result.valid
    assert result.error.startswith("Only exactly 1 trio(s) of size 3+")


def test_undersized_trio_reports_shortfall():
    result = validate_contract([[c("H5"), c("D5"), c("C5")]], 3)
    assert not result.valid
    assert result.error == "Missing 1 trio(s) of size 4+."

    assert validate_contract([[c("H5"), c("D5"), c("C5"), JOKER]], 3).valid


def test_round_two_needs_two_groups():
    result = validate_contract([[c("H5"), c("D5"), c("C5")]], 2)
    assert result.error == "Missing 1 trio(s) of size 3+."


def test_final_round_escala():
    run = [c(f"H{value}") for value in range(3, 10)]
    assert validate_contract([run], 8).valid
    result = validate_contract([run[:6]], 8)
    assert result.error == "Missing 1 escala(s) of size 7+."
    assert not validate_contract([[c("H5"), c("D5"), c("C5")]], 8).valid


def test_unknown_round():
    assert not validate_contract([[c("H5"), c("D5"), c("C5")]], 9).valid


def test_additional_down_shapes():
    assert validate_additional_down([[c("H5"), c("D5"), c("C5")], [c("S2"), c("S3"), c("S4")]]).valid
    assert validate_additional_down([]).error == "At least one group must be laid down."
    assert validate_additional_down([[c("H5"), c("D5")]]).error == "Group 1 must have at least 3 cards."
    bad = validate_additional_down([[c("H5"), c("D5"), c("C5")], [c("H5", 1), JOKER, Card("JOKER-1-0", Suit.JOKER, 0)]])
    assert bad.error == "Group 2 is neither a valid trio nor a valid escala."
