import itertools

import pytest

from itemsetminer.Itemset import Itemset, singleton_model
from itemsetminer.ItemsetTree import ItemsetTree
from itemsetminer.ItemsetMiner import StructuralEM
from itemsetminer.InferenceAlgorithms import InferGreedy
from itemsetminer.TransactionDatabase import TransactionDatabase, scan_singletons


class ScriptedRandom:
    """Random source replaying fixed draws, enough for ItemsetTree.random_walk."""

    def __init__(self, values):
        self.values = itertools.cycle(values)

    def random(self):
        return next(self.values)


@pytest.fixture
def toy_transactions():
    return [Itemset([1, 2]), Itemset([1, 2]), Itemset([1, 3])]


@pytest.fixture
def basket_transactions():
    return [Itemset(t) for t in ([1, 2, 3], [1, 2], [1, 2, 3, 4], [3, 4], [3, 4, 5],
                                 [1, 2, 5], [2, 3, 4], [1, 2, 3], [4, 5], [1, 2, 4, 5])]


@pytest.fixture
def scripted_rng():
    return ScriptedRandom


# on the toy tree the draws (0.0, 0.9) walk to {1, 3} and (0.0, 0.1) walk to {1, 2}
@pytest.fixture
def toy_walks():
    return [0.0, 0.9, 0.0, 0.1]


@pytest.fixture
def make_driver():
    def make(transactions, rng, inference=None, executor=None, **kwargs):
        singletons = scan_singletons(transactions)
        tree = ItemsetTree().build_tree(transactions, singletons)
        database = TransactionDatabase(transactions, executor)
        driver = StructuralEM(database, tree, inference if inference is not None else InferGreedy(), rng, **kwargs)
        return driver, singleton_model(singletons, len(transactions))
    return make


@pytest.fixture(scope='session')
def spark_context():
    pyspark = pytest.importorskip('pyspark')
    try:
        context = pyspark.SparkContext('local[2]', 'itemsetminer-tests')
    except Exception as e:  # no JVM available
        pytest.skip("cannot start a local Spark context: %s" % e)
    yield context
    context.stop()
