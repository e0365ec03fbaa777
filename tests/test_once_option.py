from nrschub.utils.once_option import OnceOption


def test_unset_returns_none():
    slot = OnceOption()
    assert slot.get() is None


def test_set_once():
    slot = OnceOption()
    assert slot.set("peer") is None
    assert slot.get() == "peer"


def test_second_set_returns_value_back():
    slot = OnceOption()
    slot.set("first")
    assert slot.set("second") == "second"
    assert slot.get() == "first"