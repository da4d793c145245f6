from storyseed_core import format_prize, placement_for

EVENT = {
    "id": "e1",
    "name": "Summer Championship",
    "results_announced": True,
    "winner_id": "r1",
    "runner_up_id": "r2",
    "second_runner_up_id": "r3",
}


def test_placement_for_each_position():
    assert placement_for(EVENT, "r1") == "winner"
    assert placement_for(EVENT, "r2") == "runner_up"
    assert placement_for(EVENT, "r3") == "second_runner_up"
    assert placement_for(EVENT, "r9") == "participant"
    assert placement_for(EVENT, None) is None


def test_format_prize():
    assert format_prize(50000, "INR") == "₹50,000"
    assert format_prize(99.5, "usd") == "$99.50"
    assert format_prize(100, "CHF") == "CHF 100"
    assert format_prize(None, "INR") is None
