from return_tools.analysis.aspects import MINOR_ASPECTS, aspect_table, find_aspect, find_aspects
from return_tools.models import BodyPosition


def make_body(name: str, lon: float, speed: float = 1.0) -> BodyPosition:
    return BodyPosition(name=name, longitude=lon, speed=speed)


def test_aspect_is_symmetric() -> None:
    for a, b in [(10.0, 100.0), (359.0, 1.0), (15.0, 258.0), (200.0, 20.5), (0.0, 67.0)]:
        assert find_aspect(a, b) == find_aspect(b, a)


def test_conjunction_across_zero() -> None:
    match = find_aspect(359.0, 1.0)

    assert match is not None
    assert match.aspect == "conjunction"
    assert abs(match.separation - 2.0) < 1e-9
    assert abs(match.orb - 2.0) < 1e-9


def test_no_aspect_outside_orb() -> None:
    # 67 degrees: 7 past the sextile (orb 6), 23 short of the square.
    assert find_aspect(0.0, 67.0) is None


def test_closest_aspect_within_its_own_orb_wins() -> None:
    table = {0.0: ("conjunction", 10.0), 10.0: ("decile", 5.0)}
    match = find_aspect(0.0, 6.0, table)

    assert match.aspect == "decile"
    assert abs(match.orb - 4.0) < 1e-9


def test_minor_aspects_only_when_requested() -> None:
    assert find_aspect(0.0, 150.5) is None
    match = find_aspect(0.0, 150.5, aspect_table(include_minor=True))

    assert match.aspect == "quincunx"
    assert set(MINOR_ASPECTS).issubset(aspect_table(include_minor=True))


def test_find_aspects_checks_each_pair_once() -> None:
    bodies = [make_body("Sun", 10.0), make_body("Moon", 100.4, 13.0), make_body("Mars", 190.0, 0.5)]
    records = find_aspects(bodies)

    pairs = [(r.body_a, r.body_b, r.aspect) for r in records]
    assert pairs == [
        ("Sun", "Moon", "square"),
        ("Sun", "Mars", "opposition"),
        ("Moon", "Mars", "square"),
    ]
    assert all(r.exact for r in records)


def test_exact_flag_uses_small_threshold() -> None:
    records = find_aspects([make_body("Sun", 0.0), make_body("Venus", 125.0)])

    assert len(records) == 1
    assert records[0].aspect == "trine"
    assert not records[0].exact


def test_applying_and_separating() -> None:
    # Moon 85 degrees behind the Sun and closing: moving away from the square.
    separating = find_aspects([make_body("Moon", 10.0, 13.0), make_body("Sun", 95.0, 1.0)])[0]
    # Moon 95 degrees behind the Sun and closing: moving onto the square.
    applying = find_aspects([make_body("Moon", 0.0, 13.0), make_body("Sun", 95.0, 1.0)])[0]

    assert separating.applying is False
    assert applying.applying is True


def test_applying_unknown_without_motion() -> None:
    record = find_aspects([make_body("A", 0.0, 0.0), make_body("B", 120.0, 0.0)])[0]

    assert record.applying is None


def test_applying_does_not_depend_on_argument_order() -> None:
    for moon, sun in [
        (make_body("Moon", 10.0, 13.0), make_body("Sun", 95.0, 1.0)),
        (make_body("Moon", 0.0, 13.0), make_body("Sun", 95.0, 1.0)),
        (make_body("Mars", 200.0, -0.5), make_body("Venus", 321.0, 0.5)),
        (make_body("Mars", 200.0, 0.5), make_body("Venus", 321.0, -0.5)),
        (make_body("Sun", 358.0, 1.0), make_body("Mercury", 2.0, -1.0)),
    ]:
        forward = find_aspects([moon, sun])[0]
        backward = find_aspects([sun, moon])[0]
        assert forward.applying is backward.applying
        assert forward.applying is not None


def test_equal_and_opposite_speeds() -> None:
    # Retrograde Mars and direct Venus widen the 121 degree gap away from the trine.
    opening = find_aspects([make_body("Mars", 200.0, -0.5), make_body("Venus", 321.0, 0.5)])[0]
    closing = find_aspects([make_body("Mars", 200.0, 0.5), make_body("Venus", 321.0, -0.5)])[0]
    # Moving together, the separation never changes.
    locked = find_aspects([make_body("Mars", 200.0, 0.5), make_body("Venus", 321.0, 0.5)])[0]

    assert opening.applying is False
    assert closing.applying is True
    assert locked.applying is None
