from __future__ import annotations


def test_self_dependency_is_a_cycle() -> None:
    from services.api.app.task_graph import would_create_cycle

    assert would_create_cycle([], "a", "a")


def test_direct_back_edge_is_a_cycle() -> None:
    from services.api.app.task_graph import would_create_cycle

    # b waits on a; making a wait on b closes the loop.
    assert would_create_cycle([("b", "a")], "a", "b")


def test_transitive_cycle_detected() -> None:
    from services.api.app.task_graph import would_create_cycle

    edges = [("c", "b"), ("b", "a")]
    assert would_create_cycle(edges, "a", "c")
    assert not would_create_cycle(edges, "c", "a")


def test_unrelated_edges_do_not_block() -> None:
    from services.api.app.task_graph import would_create_cycle

    edges = [("b", "a"), ("d", "c")]
    assert not would_create_cycle(edges, "c", "b")


def test_longest_chain_follows_blocking_order() -> None:
    from services.api.app.task_graph import longest_chain

    nodes = ["a", "b", "c", "d"]
    # b and c wait on a; d waits on c.
    edges = [("b", "a"), ("c", "a"), ("d", "c")]
    assert longest_chain(nodes, edges) == ["a", "c", "d"]


def test_longest_chain_without_edges_is_first_node() -> None:
    from services.api.app.task_graph import longest_chain

    assert longest_chain(["x", "y"], []) == ["x"]
    assert longest_chain([], []) == []


def test_longest_chain_ignores_edges_outside_nodes() -> None:
    from services.api.app.task_graph import longest_chain

    assert longest_chain(["a", "b"], [("b", "a"), ("z", "b")]) == ["a", "b"]
