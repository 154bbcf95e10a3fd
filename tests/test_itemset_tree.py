import numpy as np

from itemsetminer.Itemset import Itemset
from itemsetminer.ItemsetTree import ItemsetTree
from itemsetminer.TransactionDatabase import scan_singletons


def build(transactions):
    return ItemsetTree().build_tree(transactions, scan_singletons(transactions))


def test_children_ordered_by_descending_frequency(toy_transactions):
    tree = build(toy_transactions)

    assert tree.root.count == 3
    assert list(tree.root.children) == [1]
    node = tree.root.children[1]
    assert node.count == 3
    assert [(child.item, child.count) for child in node.children.values()] == [(2, 2), (3, 1)]
    assert tree.no_of_nodes == 3


def test_walk_follows_the_draws(toy_transactions, scripted_rng, toy_walks):
    tree = build(toy_transactions)
    rng = scripted_rng(toy_walks)

    assert tree.random_walk(rng) == Itemset([1, 3])
    assert tree.random_walk(rng) == Itemset([1, 2])


def test_walk_is_reproducible_with_a_seed(basket_transactions):
    tree = build(basket_transactions)

    rng_a = np.random.default_rng(42)
    rng_b = np.random.default_rng(42)

    assert [tree.random_walk(rng_a) for _ in range(25)] == [tree.random_walk(rng_b) for _ in range(25)]


def test_walks_only_produce_prefix_paths(toy_transactions):
    tree = build(toy_transactions)
    rng = np.random.default_rng(0)

    # every transaction ends at a leaf, so the walk never stops at {1}
    for _ in range(50):
        assert tree.random_walk(rng) in (Itemset([1, 2]), Itemset([1, 3]))


def test_walk_may_stop_at_the_root(scripted_rng):
    tree = build([Itemset(), Itemset([1])])

    assert tree.random_walk(scripted_rng([0.0])) == Itemset()
    assert tree.random_walk(scripted_rng([0.75])) == Itemset([1])
    assert build([]).random_walk(scripted_rng([0.5])) == Itemset()


def test_statistics(basket_transactions):
    tree = build(basket_transactions)
    statistics = tree.statistics()

    assert statistics['transactions'] == len(basket_transactions)
    assert statistics['nodes'] == tree.no_of_nodes
    assert statistics['depth'] == 4
    assert statistics['mean_branching'] > 1.0
    assert str(tree).splitlines()[0] == "2 (7)"
