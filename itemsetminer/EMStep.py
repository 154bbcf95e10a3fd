import math
import logging
from collections import namedtuple

import numpy as np

from itemsetminer.Itemset import itemset_order

logger = logging.getLogger(__name__)

# stop optimizing parameters once norm(p_prev - p_new) is below this
OPTIMIZE_TOL = 1e-10
# itemsets whose probability ends at or below this are dropped from the model
PROBABILITY_FLOOR = 0.0
MAX_OPTIMIZE_STEPS = 1000


class InconsistentCostError(ArithmeticError):
    pass


EMResult = namedtuple('EMResult', ['average_cost', 'steps', 'converged', 'dropped'])


def check_cost(cost, phase):
    if not math.isfinite(cost):
        raise InconsistentCostError("%s produced a non-finite average cost (%r)" % (phase, cost))
    return cost


class EMStep:
    """Expectation-maximization over the itemset model.

    :param
    @cache - ItemsetCache of the transaction database being modelled
    @tol - convergence tolerance on the Euclidean norm of the probability change
    @floor - probability at or below which an itemset is dropped after optimization
    @max_steps - upper bound on expectation/maximization rounds in one optimization
    """

    def __init__(self, cache, tol=OPTIMIZE_TOL, floor=PROBABILITY_FLOOR, max_steps=MAX_OPTIMIZE_STEPS):
        self.cache = cache
        self.tol = tol
        self.floor = floor
        self.max_steps = max_steps

    @property
    def database(self):
        return self.cache.database

    def initialize(self, itemsets):
        average_cost = check_cost(self.cache.initialize(itemsets), "cache initialization")
        self.database.average_cost = average_cost
        return average_cost

    # infer the cover of every transaction under the given probabilities
    def expectation(self, itemsets):
        return check_cost(self.cache.reinfer(itemsets), "expectation step")

    # probability of an itemset is the fraction of transactions whose cover uses it
    def maximization(self, itemsets):
        counts = self.cache.cover_counts()
        no_of_transactions = self.database.size()
        return {itemset: counts[itemset] / no_of_transactions for itemset in itemsets}

    def optimize(self, itemsets):
        """Optimize the probabilities of the itemsets (in place) until they stabilise.

        Zero probability itemsets are dropped afterwards, and the average cost of
        the database is set to the cost of the optimized model.
        """
        prev_itemsets = dict(itemsets)
        norm = math.inf
        steps = 0
        converged = True
        while norm > self.tol:
            if steps >= self.max_steps:
                logger.warning("Parameter optimization stopped after %d steps (norm %.3g)", steps, norm)
                converged = False
                break

            self.expectation(prev_itemsets)
            new_itemsets = self.maximization(prev_itemsets)
            norm = float(np.linalg.norm([prev_itemsets[itemset] - new_itemsets[itemset]
                                         for itemset in prev_itemsets]))
            self.cache.update_probabilities(new_itemsets)

            prev_itemsets = new_itemsets
            steps += 1

        dropped = [itemset for itemset, p in prev_itemsets.items() if p <= self.floor]
        for itemset in dropped:
            del prev_itemsets[itemset]
        if dropped:
            self.cache.remove_itemsets(dropped, prev_itemsets)

        itemsets.clear()
        itemsets.update(prev_itemsets)

        average_cost = check_cost(self.cache.recheck(itemsets), "parameter optimization")
        self.database.average_cost = average_cost
        logger.debug(" Parameter optimal itemsets: %s", itemsets)
        logger.debug(" Average cost: %.5f after %d steps", average_cost, steps)
        return EMResult(average_cost, steps, converged, dropped)

    # maximum likelihood probability of a candidate assumed to be included
    def candidate_probability(self, candidate):
        if not self.database.size():
            return 0.0
        return self.cache.containing_counts([candidate])[candidate] / self.database.size()

    def trial(self, itemsets, candidate, p):
        trial_itemsets = dict(itemsets)
        # subsets of the candidate keep their probability, the next optimization re-estimates them
        trial_itemsets[candidate] = p
        return check_cost(self.cache.trial_cost(trial_itemsets, candidate), "candidate evaluation")

    # add the candidate and recheck every cover, returns the new average cost
    def accept(self, itemsets, candidate, p):
        itemsets[candidate] = p
        self.cache.add_itemset(candidate, itemsets)
        average_cost = check_cost(self.cache.recheck(itemsets), "candidate acceptance")
        self.database.average_cost = average_cost
        return average_cost

    # cover and cost of any transaction under the given model, outside the cache
    def cover(self, transaction, itemsets):
        weights = self.cache.cost_model.weigh(itemsets)
        supported = tuple(itemset for itemset in sorted(itemsets, key=itemset_order) if itemset <= transaction)
        return self.cache.inference.infer(transaction, supported, weights)
