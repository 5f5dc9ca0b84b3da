import threading

from presence import PresenceRegistry


def test_online_while_any_connection_is_open():
    registry = PresenceRegistry()
    phone, laptop = object(), object()

    assert registry.connect(1, phone) is True
    assert registry.connect(1, laptop) is False
    assert registry.is_online(1)

    assert registry.disconnect(1, phone) is False
    assert registry.is_online(1)
    assert registry.disconnect(1, laptop) is True
    assert not registry.is_online(1)


def test_disconnect_of_unknown_user_is_a_no_op():
    registry = PresenceRegistry()

    assert registry.disconnect(7, object()) is False


def test_everyone_except_skips_own_connections():
    registry = PresenceRegistry()
    mine, theirs = object(), object()
    registry.connect(1, mine)
    registry.connect(2, theirs)

    assert registry.everyone_except(1) == [theirs]
    assert registry.online_users() == [1, 2]


def test_concurrent_connects_are_all_recorded():
    registry = PresenceRegistry()
    connections = [object() for _ in range(200)]

    def join(index):
        registry.connect(index % 5, connections[index])

    threads = [threading.Thread(target=join, args=(i,)) for i in range(200)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert registry.online_users() == [0, 1, 2, 3, 4]
    assert sum(len(registry.connections(user_id)) for user_id in range(5)) == 200
