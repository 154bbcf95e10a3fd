import math
import logging
from collections import Counter
from functools import partial

from itemsetminer.Itemset import itemset_order

logger = logging.getLogger(__name__)


# ############################# Class CacheRecord #############################
class CacheRecord:
    """Cached explanation of one transaction.

    supported - model itemsets contained in the transaction, in itemset_order
    cover - the supported itemsets currently chosen to explain it
    cost - cost of the cover under the model it was last scored with
    """

    __slots__ = ('transaction', 'supported', 'cover', 'cost')

    def __init__(self, transaction, supported=(), cover=frozenset(), cost=0.0):
        self.transaction = transaction
        self.supported = supported
        self.cover = cover
        self.cost = cost

    def __repr__(self):
        return "CacheRecord(%r, cover=%r, cost=%.5f)" % (self.transaction, sorted(self.cover, key=itemset_order),
                                                         self.cost)


# ################## record functions, each returns a new record ###################
def build_record(record, itemsets, inference, weights):
    supported = tuple(itemset for itemset in itemsets if itemset <= record.transaction)
    cover, cost = inference.infer(record.transaction, supported, weights)
    return CacheRecord(record.transaction, supported, cover, cost)


def reinfer_record(record, inference, weights):
    cover, cost = inference.infer(record.transaction, record.supported, weights)
    return CacheRecord(record.transaction, record.supported, cover, cost)


# probabilities moved but the cover is kept, only its cost is refreshed
def rescore_record(record, cost_model, weights):
    cost = cost_model.cost(record.transaction, record.cover, record.supported, weights)
    return CacheRecord(record.transaction, record.supported, record.cover, cost)


def add_itemset_record(record, candidate, inference, weights):
    if candidate <= record.transaction:
        supported = tuple(sorted(record.supported + (candidate,), key=itemset_order))
        cover, cost = inference.infer(record.transaction, supported, weights)
        return CacheRecord(record.transaction, supported, cover, cost)
    return rescore_record(record, inference.cost_model, weights)


def remove_itemsets_record(record, dropped, inference, weights):
    if any(itemset in dropped for itemset in record.supported):
        supported = tuple(itemset for itemset in record.supported if itemset not in dropped)
        cover, cost = inference.infer(record.transaction, supported, weights)
        return CacheRecord(record.transaction, supported, cover, cost)
    return rescore_record(record, inference.cost_model, weights)


# cost of the record with candidate added to the model, the record itself is left untouched
def trial_cost(record, candidate, inference, weights):
    if candidate <= record.transaction:
        supported = tuple(sorted(record.supported + (candidate,), key=itemset_order))
        return inference.infer(record.transaction, supported, weights)[1]
    return inference.cost_model.cost(record.transaction, record.cover, record.supported, weights)


# ################## aggregation operators ###################
def collect_cost(acc, record):
    acc.append(record.cost)
    return acc


def collect_trial_cost(candidate, inference, weights, acc, record):
    acc.append(trial_cost(record, candidate, inference, weights))
    return acc


def concat(acc, other):
    acc.extend(other)
    return acc


def count_cover(acc, record):
    acc.update(record.cover)
    return acc


def count_containing(itemsets, acc, record):
    acc.update(itemset for itemset in itemsets if itemset <= record.transaction)
    return acc


def merge_counts(acc, other):
    acc.update(other)
    return acc


class ItemsetCache:
    """Per-transaction covers of a TransactionDatabase, kept in step with the model.

    Probability-only changes rescore the cached covers without searching again,
    recheck() searches them again once the new costs are to be relied on.
    Structural changes (an itemset added or removed) rebuild the supported
    itemsets and the cover of every affected transaction.
    """

    def __init__(self, database, inference):
        self.database = database
        self.inference = inference

    @property
    def cost_model(self):
        return self.inference.cost_model

    def initialize(self, itemsets):
        weights = self.cost_model.weigh(itemsets)
        ordered = tuple(sorted(itemsets, key=itemset_order))
        self.database.map_records(partial(build_record, itemsets=ordered, inference=self.inference,
                                          weights=weights))
        return self.average_cost()

    def update_probabilities(self, itemsets):
        weights = self.cost_model.weigh(itemsets)
        self.database.map_records(partial(rescore_record, cost_model=self.cost_model, weights=weights))

    # full cover search for every transaction, the expectation step
    def reinfer(self, itemsets):
        weights = self.cost_model.weigh(itemsets)
        self.database.map_records(partial(reinfer_record, inference=self.inference, weights=weights))
        return self.average_cost()

    def recheck(self, itemsets):
        """Search every cached cover again under the current probabilities.

        update_probabilities keeps each cover and only rescores it, which goes
        stale once the moved probabilities make another cover cheaper. The
        costs are trusted only after a recheck.
        """
        average_cost = self.reinfer(itemsets)
        logger.debug(" Rechecked covers, average cost: %.5f", average_cost)
        return average_cost

    def add_itemset(self, candidate, itemsets):
        weights = self.cost_model.weigh(itemsets)
        self.database.map_records(partial(add_itemset_record, candidate=candidate, inference=self.inference,
                                          weights=weights))

    def remove_itemsets(self, dropped, itemsets):
        weights = self.cost_model.weigh(itemsets)
        self.database.map_records(partial(remove_itemsets_record, dropped=frozenset(dropped),
                                          inference=self.inference, weights=weights))

    def trial_cost(self, itemsets, candidate):
        weights = self.cost_model.weigh(itemsets)
        costs = self.database.aggregate([], partial(collect_trial_cost, candidate, self.inference, weights), concat)
        return self.mean(costs)

    def average_cost(self):
        return self.mean(self.database.aggregate([], collect_cost, concat))

    def mean(self, costs):
        if not self.database.size():
            return 0.0
        # fsum keeps the result independent of how the records are partitioned
        return math.fsum(costs) / self.database.size()

    # number of transactions whose cover uses each itemset
    def cover_counts(self):
        return self.database.aggregate(Counter(), count_cover, merge_counts)

    # number of transactions containing each itemset
    def containing_counts(self, itemsets):
        return self.database.aggregate(Counter(), partial(count_containing, tuple(itemsets)), merge_counts)
