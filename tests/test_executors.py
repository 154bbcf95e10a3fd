import os
import copy
import operator

import pytest

from itemsetminer import ItemsetMiner
from itemsetminer.Executors import SerialExecutor, ThreadExecutor, SparkExecutor


def append(acc, value):
    acc.append(value)
    return acc


def test_thread_executor_partitions_preserve_order():
    executor = ThreadExecutor(workers=3)
    partitions = executor.distribute(range(10))

    assert len(partitions) == 3
    assert executor.collect(partitions) == list(range(10))
    assert executor.collect(executor.map(partitions, lambda x: x * x)) == [x * x for x in range(10)]


def test_map_returns_new_records():
    for executor in (SerialExecutor(), ThreadExecutor(workers=2)):
        records = executor.distribute([1, 2, 3])
        mapped = executor.map(records, lambda x: x + 1)
        assert executor.collect(records) == [1, 2, 3]
        assert executor.collect(mapped) == [2, 3, 4]


def test_aggregate_does_not_share_the_zero_value():
    for executor in (SerialExecutor(), ThreadExecutor(workers=4)):
        records = executor.distribute(range(7))
        zero = []
        result = executor.aggregate(records, zero, append, operator.add)
        assert sorted(result) == list(range(7))
        assert zero == []


def test_empty_input_and_invalid_workers():
    executor = ThreadExecutor(workers=2)
    assert executor.collect(executor.distribute([])) == []
    assert executor.aggregate(executor.distribute([]), 0, operator.add, operator.add) == 0
    with pytest.raises(ValueError):
        ThreadExecutor(workers=0)


class FakeRDD:
    """Records the RDD calls SparkExecutor makes, runs everything in process."""

    def __init__(self, records, calls):
        self.records = list(records)
        self.calls = calls
        self.persisted = False

    def map(self, func):
        return FakeRDD([func(record) for record in self.records], self.calls)

    def persist(self):
        self.calls.append(('persist', self))
        self.persisted = True
        return self

    def cache(self):
        self.calls.append(('cache', self))
        self.persisted = True
        return self

    def unpersist(self):
        self.calls.append(('unpersist', self))
        self.persisted = False
        return self

    def checkpoint(self):
        self.calls.append(('checkpoint', self))

    def count(self):
        self.calls.append(('count', self))
        return len(self.records)

    def aggregate(self, zero, seq_op, comb_op):
        acc = copy.deepcopy(zero)
        for record in self.records:
            acc = seq_op(acc, record)
        return comb_op(zero, acc)

    def collect(self):
        return list(self.records)


class FakeSparkContext:

    def __init__(self):
        self.calls = list()
        self.checkpoint_dir = None

    def setCheckpointDir(self, path):
        self.checkpoint_dir = path

    def parallelize(self, records, slices=None):
        return FakeRDD(records, self.calls)


def test_spark_executor_always_has_a_checkpoint_dir(tmp_path):
    context = FakeSparkContext()
    executor = SparkExecutor(context)

    assert executor.checkpoint_dir is not None
    assert os.path.isdir(executor.checkpoint_dir)
    assert context.checkpoint_dir == executor.checkpoint_dir

    SparkExecutor(context, checkpoint_dir=str(tmp_path))
    assert context.checkpoint_dir == str(tmp_path)


def test_spark_map_persists_new_records_and_releases_old(tmp_path):
    context = FakeSparkContext()
    executor = SparkExecutor(context, checkpoint_dir=str(tmp_path))
    records = executor.distribute([1, 2, 3])
    assert records.persisted

    mapped = executor.map(records, lambda x: x * 10)

    assert mapped.persisted
    assert not records.persisted
    assert [call for call, rdd in context.calls if rdd is mapped] == ['persist', 'count']
    # the new records are materialized before their parent is released
    assert context.calls.index(('count', mapped)) < context.calls.index(('unpersist', records))
    assert executor.collect(mapped) == [10, 20, 30]
    assert executor.aggregate(mapped, [], append, operator.add) == [10, 20, 30]


def test_spark_checkpoint_cuts_the_lineage(tmp_path):
    context = FakeSparkContext()
    executor = SparkExecutor(context, checkpoint_dir=str(tmp_path))
    records = executor.distribute([1, 2])
    del context.calls[:]

    assert executor.checkpoint(records) is records
    assert [call for call, _ in context.calls] == ['cache', 'checkpoint', 'count']


def test_mining_on_the_spark_strategy_matches_serial(basket_transactions):
    serial = ItemsetMiner(basket_transactions, max_structure_steps=200, random_state=7,
                          checkpoint_every=1).fit()
    spark = ItemsetMiner(basket_transactions, max_structure_steps=200, random_state=7, checkpoint_every=1,
                         executor=SparkExecutor(FakeSparkContext())).fit()

    assert dict(spark) == dict(serial)
    assert spark.trace.average_cost == serial.trace.average_cost
