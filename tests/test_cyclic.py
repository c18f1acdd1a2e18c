"""
Tests for mutually owning nodes: the leak is permanent and silent.
"""

import gc

from ownership import Rc, link_mutually, new_cycle_node, next_of


def make_cycle(drops):
    a = new_cycle_node("a", on_drop=drops)
    b = new_cycle_node("b", on_drop=drops)
    link_mutually(a, b)
    return a, b


class TestLinkMutually:
    def test_counts_after_link(self, drops):
        a, b = make_cycle(drops)
        assert a.strong_count() == 2
        assert b.strong_count() == 2

    def test_next_points_at_partner(self, drops):
        a, b = make_cycle(drops)
        successor = next_of(a)
        assert Rc.ptr_eq(successor, b)
        successor.release()
        back = next_of(b)
        assert Rc.ptr_eq(back, a)
        back.release()

    def test_relinking_replaces_previous_link(self, drops):
        a, b = make_cycle(drops)
        link_mutually(a, b)
        assert a.strong_count() == 2
        assert b.strong_count() == 2

    def test_unlinked_node_has_no_next(self):
        node = new_cycle_node(1)
        assert next_of(node) is None


class TestLeak:
    def test_leak_after_external_release(self, drops, diagnostics):
        a, b = make_cycle(drops)
        watch_a, watch_b = a.downgrade(), b.downgrade()
        a.release()
        b.release()

        assert watch_a.strong_count() == 1
        assert watch_b.strong_count() == 1
        assert drops.values == []
        assert diagnostics.live_payloads() == 2
        assert diagnostics.validate_heap() == 0

    def test_leak_is_persistent(self, drops, diagnostics):
        a, b = make_cycle(drops)
        watch_a = a.downgrade()
        a.release()
        b.release()
        watch_a.release()

        gc.collect()
        assert drops.values == []
        assert len(diagnostics.heap) == 2
        for block in diagnostics.live_blocks():
            assert block.strong == 1
            assert not block.dropped

    def test_leaked_node_still_upgradable(self, drops):
        a, b = make_cycle(drops)
        watch = a.downgrade()
        a.release()
        b.release()
        again = watch.upgrade()
        assert again is not None
        assert again.value.value == "a"
        again.release()
        assert watch.strong_count() == 1


class TestBreakingTheCycle:
    def test_caller_can_break_the_cycle(self, drops, diagnostics):
        a, b = make_cycle(drops)
        watch = a.downgrade()
        a.release()
        b.release()

        a = watch.upgrade()
        a.value.next.replace(None).release()
        assert drops.values == ["b"]
        a.release()
        assert drops.values == ["b", "a"]
        watch.release()
        assert diagnostics.heap == {}
