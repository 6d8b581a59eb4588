"""Unit tests for the net undo/redo log."""

from sld.history.net_history import NetHistory
from sld.schemas.diagram import DiagramEdge, Net


def _net(net_id: str, voltage: float = 200) -> Net:
    return Net(id=net_id, kind="AC", voltage=voltage, phase=1, label=net_id)


def _edge(edge_id: str, net_id: str | None = None) -> DiagramEdge:
    return DiagramEdge(id=edge_id, source="a", target="b", net_id=net_id)


class TestNetHistory:
    def test_empty_history(self):
        history = NetHistory()
        assert history.state() == {"can_undo": False, "can_redo": False}
        assert history.undo([], []) is None
        assert history.redo([], []) is None

    def test_record_then_undo_returns_pre_state(self):
        history = NetHistory()
        nets = [_net("n1")]
        edges = [_edge("e1")]
        history.record(nets, edges)
        assert history.state() == {"can_undo": True, "can_redo": False}

        current_nets = nets + [_net("n2")]
        snapshot = history.undo(current_nets, edges)
        assert list(snapshot.nets) == nets
        assert list(snapshot.edges) == edges
        assert history.state() == {"can_undo": False, "can_redo": True}

    def test_redo_returns_undone_state(self):
        history = NetHistory()
        before = [_net("n1")]
        after = [_net("n1"), _net("n2")]
        history.record(before, [])
        history.undo(after, [])

        snapshot = history.redo(before, [])
        assert list(snapshot.nets) == after
        assert history.state() == {"can_undo": True, "can_redo": False}

    def test_record_clears_future(self):
        history = NetHistory()
        history.record([_net("n1")], [])
        history.undo([_net("n2")], [])
        assert history.can_redo
        history.record([_net("n3")], [])
        assert not history.can_redo

    def test_snapshots_are_independent_copies(self):
        history = NetHistory()
        nets = [_net("n1", voltage=200)]
        edges = [_edge("e1", net_id="n1")]
        history.record(nets, edges)

        nets[0].voltage = 400
        edges[0].net_id = None

        snapshot = history.undo(nets, edges)
        assert snapshot.nets[0].voltage == 200
        assert snapshot.edges[0].net_id == "n1"

    def test_restore_does_not_alias_history(self):
        history = NetHistory()
        history.record([_net("n1")], [])
        snapshot = history.undo([], [])
        nets, _ = snapshot.restore()
        nets[0].label = "changed"
        assert snapshot.nets[0].label == "n1"

    def test_multiple_steps(self):
        history = NetHistory()
        states = [[_net("n1")], [_net("n1"), _net("n2")], [_net("n1"), _net("n2"), _net("n3")]]
        history.record(states[0], [])
        history.record(states[1], [])
        current = states[2]

        snap = history.undo(current, [])
        assert list(snap.nets) == states[1]
        snap = history.undo(list(snap.nets), [])
        assert list(snap.nets) == states[0]
        assert not history.can_undo
        assert len(history.future) == 2
