import pytest

from itemsetminer.Itemset import Itemset
from itemsetminer.Associations import Associations, Rule, iter_rules, calculate_interestingness, read_itemsets

ONE, THREE, PAIR = Itemset([1]), Itemset([3]), Itemset([1, 2])


def test_rules_of_a_triple():
    rules = list(iter_rules(Itemset([1, 2, 3]), 0.5))

    assert len(rules) == 6
    assert len(set(rules)) == 6
    assert Rule(Itemset([1, 2]), Itemset([3]), 0.5) in rules
    assert Rule(Itemset([3]), Itemset([1, 2]), 0.5) in rules
    for rule in rules:
        assert rule.antecedent and rule.consequent
        assert rule.antecedent | rule.consequent == Itemset([1, 2, 3])
    assert repr(Rule(Itemset([1, 2]), Itemset([3]), 0.5)) == "{1, 2} => {3}\tprob: 0.50"


def test_no_rules_for_singletons():
    associations = Associations({ONE: 0.4, PAIR: 0.6})

    assert list(iter_rules(ONE, 0.4)) == []
    assert set(associations.rules()) == {Rule(Itemset([1]), Itemset([2]), 0.6),
                                         Rule(Itemset([2]), Itemset([1]), 0.6)}


def test_interestingness():
    itemsets = {PAIR: 2 / 3, ONE: 1 / 3, THREE: 1 / 3}
    counts = {PAIR: 2, ONE: 3, THREE: 1}

    interestingness = calculate_interestingness(itemsets, counts, 3)

    assert interestingness == pytest.approx({PAIR: 1.0, ONE: 1 / 3, THREE: 1.0})


def test_ordering_and_frame():
    a, b, c = Itemset([1]), Itemset([2]), Itemset([3, 4])
    associations = Associations({a: 0.5, b: 0.5, c: 0.9}, {a: 1.0, b: 2.0, c: 0.0})

    assert [itemset for itemset, _ in associations] == [c, b, a]
    assert len(associations) == 3

    frame = associations.to_frame()
    assert list(frame.columns) == ['itemset', 'size', 'probability', 'interestingness']
    assert frame['itemset'].tolist() == [[3, 4], [2], [1]]
    assert frame['size'].tolist() == [2, 1, 1]
    assert frame['interestingness'].tolist() == [0.0, 2.0, 1.0]


def test_save_and_read(tmp_path):
    associations = Associations({PAIR: 2 / 3, ONE: 1 / 3, THREE: 1 / 3})
    path = tmp_path / 'model.txt'

    associations.save(str(path))

    assert path.read_text().splitlines()[0] == "# probability items"
    assert read_itemsets(str(path)) == associations.itemsets


def test_read_malformed_model(tmp_path):
    path = tmp_path / 'model.txt'
    path.write_text("0.5 1 2\n0.25 1 x\n")

    with pytest.raises(ValueError, match=":2:"):
        read_itemsets(str(path))
