import copy
import os
import logging
import tempfile
from concurrent.futures import ThreadPoolExecutor

logger = logging.getLogger(__name__)


class SerialExecutor:
    """Sequential strategy, the records are a plain list.

    Every strategy exposes the same primitives (distribute, map, aggregate,
    collect and checkpoint). A map never mutates records in place, it returns a
    new collection, so all strategies run the same record functions and produce
    the same values.
    """

    name = 'serial'
    sequential = True

    def distribute(self, records):
        return list(records)

    def map(self, records, func):
        return [func(record) for record in records]

    def aggregate(self, records, zero, seq_op, comb_op):
        acc = copy.deepcopy(zero)
        for record in records:
            acc = seq_op(acc, record)
        return acc

    def collect(self, records):
        return list(records)

    def checkpoint(self, records):
        return records


class ThreadExecutor:
    """Local-parallel strategy.

    Records are split into one contiguous partition per worker thread. A worker
    only ever reads and rebuilds its own partition, so no locking is needed, and
    the partial results of an aggregate are combined by the calling thread.
    """

    name = 'threads'
    sequential = False

    def __init__(self, workers=None):
        if workers is not None and workers < 1:
            raise ValueError("workers must be a positive integer")
        self.workers = workers or os.cpu_count() or 1

    def distribute(self, records):
        records = list(records)
        size = -(-len(records) // self.workers) if records else 1
        partitions = [records[start:start + size] for start in range(0, len(records), size)]
        logger.debug("Distributed %d records over %d partitions", len(records), len(partitions))
        return partitions

    def map(self, partitions, func):
        def map_partition(partition):
            return [func(record) for record in partition]

        with ThreadPoolExecutor(max_workers=self.workers) as pool:
            return list(pool.map(map_partition, partitions))

    def aggregate(self, partitions, zero, seq_op, comb_op):
        def fold_partition(partition):
            acc = copy.deepcopy(zero)
            for record in partition:
                acc = seq_op(acc, record)
            return acc

        with ThreadPoolExecutor(max_workers=self.workers) as pool:
            partials = list(pool.map(fold_partition, partitions))

        # single writer reduction
        result = copy.deepcopy(zero)
        for partial in partials:
            result = comb_op(result, partial)
        return result

    def collect(self, partitions):
        return [record for partition in partitions for record in partition]

    def checkpoint(self, partitions):
        return partitions


class SparkExecutor:
    """Distributed-partitioned strategy backed by Spark RDDs.

    Every map persists the new records RDD and releases the previous one, so a
    later aggregate does not recompute the inference passes before it. The
    lineage is cut by checkpoint(), which the driver calls on a fixed schedule.

    :param
    @context - an active pyspark SparkContext
    @partitions - number of RDD slices, defaults to the context's default parallelism
    @checkpoint_dir - directory handed to SparkContext.setCheckpointDir, a local temporary
                      directory when not given (use a shared file system on a cluster)
    """

    name = 'spark'
    sequential = False

    def __init__(self, context, partitions=None, checkpoint_dir=None):
        self.context = context
        self.partitions = partitions
        if checkpoint_dir is None:
            checkpoint_dir = tempfile.mkdtemp(prefix='itemsetminer-checkpoints-')
        self.checkpoint_dir = checkpoint_dir
        context.setCheckpointDir(checkpoint_dir)

    def distribute(self, records):
        return self.context.parallelize(list(records), self.partitions).persist()

    def map(self, rdd, func):
        records = rdd.map(func).persist()
        # materialize before the parent is released, otherwise it is recomputed
        records.count()
        rdd.unpersist()
        return records

    def aggregate(self, rdd, zero, seq_op, comb_op):
        return rdd.aggregate(zero, seq_op, comb_op)

    def collect(self, rdd):
        return rdd.collect()

    def checkpoint(self, rdd):
        # cut the lineage of the iterated map chain
        rdd.cache()
        rdd.checkpoint()
        rdd.count()
        logger.debug("Materialized and checkpointed %s to %s", rdd, self.checkpoint_dir)
        return rdd
