import logging
from collections import namedtuple
from itertools import combinations

import numpy as np

from itemsetminer.Itemset import Itemset, itemset_order

logger = logging.getLogger(__name__)

# itemsets larger than this are subsampled before taking their power set
SIMPLIFY_MAX_ITEMS = 30

GROW = 'grow'
SIMPLIFY = 'simplify'
COMBINE = 'combine'

# outcome of one structure step, exhausted is set when the step budget ran out
StepResult = namedtuple('StepResult', ['phase', 'accepted', 'exhausted', 'steps', 'evaluated'])


def sub_sample(itemset, m, rng):
    return Itemset(rng.choice(sorted(itemset), size=m, replace=False))


# all non-empty subsets, smallest first
def power_set(itemset):
    items = sorted(itemset)
    for size in range(1, len(items) + 1):
        for subset in combinations(items, size):
            yield Itemset(subset)


class StructuralSearch:
    """Proposes structural edits to the model and keeps the first one that lowers the cost.

    :param
    @em - EMStep used to score every candidate
    @tree - ItemsetTree sampled by the grow step
    @rng - numpy random Generator shared by the tree walk and the simplify subsampling
    @max_steps - number of candidates a single step may propose
    @max_simplify_items - itemsets larger than this are subsampled before simplification
    """

    def __init__(self, em, tree, rng=None, max_steps=100000, max_simplify_items=SIMPLIFY_MAX_ITEMS):
        if max_steps < 1:
            raise ValueError("max_steps must be a positive integer")
        self.em = em
        self.tree = tree
        self.rng = rng if rng is not None else np.random.default_rng()
        self.max_steps = max_steps
        self.max_simplify_items = max_simplify_items
        # candidates known not to improve the cost in this run
        self.rejected = set()

    def evaluate_candidate(self, itemsets, candidate, evaluated):
        if not candidate or candidate in itemsets or candidate in self.rejected:
            return False

        evaluated.append(candidate)
        p = self.em.candidate_probability(candidate)
        if p > 0:
            cost = self.em.trial(itemsets, candidate, p)
            logger.debug(" potential candidate: %s, prob: %.5f, cost: %.5f", candidate, p, cost)
            if cost < self.em.database.average_cost:
                average_cost = self.em.accept(itemsets, candidate, p)
                logger.info(" Candidate accepted: %s (prob %.5f, average cost %.5f)", candidate, p, average_cost)
                return True

        self.rejected.add(candidate)
        return False

    # candidates sampled from the itemset tree, running out of steps ends the whole run
    def learn_structure_step(self, itemsets):
        evaluated = list()
        for step in range(self.max_steps):
            candidate = self.tree.random_walk(self.rng)
            if self.evaluate_candidate(itemsets, candidate, evaluated):
                return StepResult(GROW, candidate, False, step + 1, evaluated)

        logger.warning("Structure iteration limit exceeded. No better candidate found.")
        return StepResult(GROW, None, True, self.max_steps, evaluated)

    # candidates from the power sets of the model itemsets, largest itemsets first
    def simplify_itemsets_step(self, itemsets):
        ordered = sorted(itemsets, key=lambda itemset: (-len(itemset), tuple(sorted(itemset))))

        def candidates():
            for itemset in ordered:
                if len(itemset) > self.max_simplify_items:
                    itemset = sub_sample(itemset, self.max_simplify_items, self.rng)
                for subset in power_set(itemset):
                    yield subset

        return self.search(SIMPLIFY, itemsets, candidates())

    # candidates from the union of every pair of model itemsets, smallest first
    def combine_itemsets_step(self, itemsets):
        ordered = sorted(itemsets, key=itemset_order)

        def candidates():
            for first, second in combinations(ordered, 2):
                yield first | second

        return self.search(COMBINE, itemsets, candidates())

    def search(self, phase, itemsets, candidates):
        evaluated = list()
        steps = 0
        for candidate in candidates:
            if self.evaluate_candidate(itemsets, candidate, evaluated):
                return StepResult(phase, candidate, False, steps + 1, evaluated)
            steps += 1
            if steps >= self.max_steps:
                logger.warning("%s iteration limit exceeded.", phase.capitalize())
                return StepResult(phase, None, True, steps, evaluated)

        logger.debug(" No better %s candidate found.", phase)
        return StepResult(phase, None, False, steps, evaluated)
