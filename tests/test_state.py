"""Unit tests for the connection registry, room index and relay state."""
from chat_relay.schemas import Session
from chat_relay.state import ConnectionRegistry, RelayState, RoomIndex

from conftest import FakeConnection, assert_index_consistent


class TestConnectionRegistry:
    def test_register_and_lookup(self):
        registry = ConnectionRegistry()
        conn = FakeConnection()

        assert registry.register(conn, 1, "r1") is None
        assert registry.lookup(conn) == Session(user_id=1, room_id="r1")
        assert conn in registry
        assert len(registry) == 1

    def test_register_replaces_and_returns_previous(self):
        registry = ConnectionRegistry()
        conn = FakeConnection()
        registry.register(conn, 1, "r1")

        previous = registry.register(conn, 1, "r2")

        assert previous == Session(user_id=1, room_id="r1")
        assert registry.lookup(conn).room_id == "r2"
        assert len(registry) == 1

    def test_unregister_is_idempotent(self):
        registry = ConnectionRegistry()
        conn = FakeConnection()
        registry.register(conn, 1, "r1")

        assert registry.unregister(conn) == Session(user_id=1, room_id="r1")
        assert registry.unregister(conn) is None
        assert registry.lookup(conn) is None

    def test_iterate_tolerates_removal(self):
        registry = ConnectionRegistry()
        conns = [FakeConnection(str(i)) for i in range(3)]
        for i, conn in enumerate(conns):
            registry.register(conn, i, "r1")

        seen = []
        for conn, session in registry.iterate():
            registry.unregister(conns[2])
            seen.append(session.user_id)

        assert seen == [0, 1, 2]
        assert len(registry) == 2


class TestRoomIndex:
    def test_add_creates_room(self):
        index = RoomIndex()
        index.add("r1", 1)
        index.add("r1", 2)
        assert index.members_of("r1") == {1, 2}

    def test_remove_last_member_deletes_room(self):
        index = RoomIndex()
        index.add("r1", 1)
        index.remove("r1", 1)
        assert index.members_of("r1") == frozenset()
        assert index.room_ids() == []

    def test_remove_unknown_is_noop(self):
        index = RoomIndex()
        index.remove("nope", 1)
        index.add("r1", 1)
        index.remove("r1", 99)
        assert index.members_of("r1") == {1}

    def test_user_stays_while_another_connection_holds_the_pair(self):
        index = RoomIndex()
        index.add("r1", 1)
        index.add("r1", 1)
        index.remove("r1", 1)
        assert index.members_of("r1") == {1}
        index.remove("r1", 1)
        assert "r1" not in index.room_ids()


class TestRelayState:
    def test_bind_updates_both_structures(self):
        state = RelayState()
        conn = FakeConnection()

        state.bind(conn, 1, "r1")

        assert state.session_of(conn) == Session(user_id=1, room_id="r1")
        assert state.members_of("r1") == {1}

    def test_rebind_moves_membership(self):
        state = RelayState()
        conn = FakeConnection()
        state.bind(conn, 1, "r1")

        previous = state.bind(conn, 1, "r2")

        assert previous.room_id == "r1"
        assert "r1" not in state.rooms.room_ids()
        assert state.members_of("r2") == {1}
        assert_index_consistent(state)

    def test_rebind_keeps_old_room_for_other_members(self):
        state = RelayState()
        a, b = FakeConnection("a"), FakeConnection("b")
        state.bind(a, 1, "r1")
        state.bind(b, 2, "r1")

        state.bind(a, 1, "r2")

        assert state.members_of("r1") == {2}
        assert_index_consistent(state)

    def test_release_is_idempotent(self):
        state = RelayState()
        conn = FakeConnection()
        state.bind(conn, 1, "r1")

        assert state.release(conn) is not None
        assert state.release(conn) is None
        assert state.release(FakeConnection("never")) is None
        assert len(state.rooms) == 0

    def test_two_connections_same_user(self):
        state = RelayState()
        phone, laptop = FakeConnection("phone"), FakeConnection("laptop")
        state.bind(phone, 1, "r1")
        state.bind(laptop, 1, "r1")

        state.release(phone)

        assert state.members_of("r1") == {1}
        assert_index_consistent(state)

    def test_recipients_excludes_sender_and_other_rooms(self):
        state = RelayState()
        a, b, c = FakeConnection("a"), FakeConnection("b"), FakeConnection("c")
        state.bind(a, 1, "r1")
        state.bind(b, 2, "r1")
        state.bind(c, 3, "r2")

        recipients = [conn for conn, _ in state.recipients("r1", exclude=a)]

        assert recipients == [b]
        assert state.recipients("empty") == []

    def test_consistency_after_mixed_events(self):
        state = RelayState()
        conns = [FakeConnection(str(i)) for i in range(6)]
        state.bind(conns[0], 1, "r1")
        state.bind(conns[1], 2, "r1")
        state.bind(conns[2], 1, "r2")
        state.bind(conns[3], 1, "r1")
        state.bind(conns[1], 2, "r2")
        state.release(conns[0])
        state.release(conns[0])
        state.bind(conns[4], 5, "r3")
        state.release(conns[4])
        state.bind(conns[5], 2, "r2")
        state.release(conns[1])

        assert_index_consistent(state)
        assert state.members_of("r1") == {1}
        assert state.members_of("r2") == {1, 2}
        assert "r3" not in state.rooms.room_ids()
