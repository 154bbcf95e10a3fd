import math
import logging

import numpy as np
from scipy.optimize import Bounds, LinearConstraint, milp

from itemsetminer.CostModel import CodeLengthCost

logger = logging.getLogger(__name__)

# seconds the ILP solver may spend on a single transaction
ILP_TIME_LIMIT = 10.0


class InferenceError(RuntimeError):
    pass


class InferenceAlgorithm:
    """Explains a transaction with the itemsets of the current model.

    infer() receives the transaction, its supported itemsets (model itemsets it
    contains, in itemset_order) and the model weights from the cost model, and
    returns the chosen cover together with its cost.
    """

    name = None
    # the exact solver cannot run inside the parallel strategies
    sequential_only = False

    def __init__(self, cost_model=None):
        self.cost_model = cost_model if cost_model is not None else CodeLengthCost()

    def infer(self, transaction, supported, weights):
        raise NotImplementedError

    # clear any state kept from a previous structural EM run
    def reset(self):
        pass

    @staticmethod
    def selectable(supported, weights):
        return [itemset for itemset in supported if math.isfinite(weights[itemset][0])]


class InferGreedy(InferenceAlgorithm):

    name = 'greedy'

    def infer(self, transaction, supported, weights):
        cover = list()
        covered = set()
        remaining = self.selectable(supported, weights)

        # add the itemset with the largest cost reduction until none reduces the cost
        while remaining:
            best_itemset = None
            best_gain = 0.0
            for itemset in remaining:
                gain = self.cost_model.gain(itemset, covered, weights)
                if gain > best_gain:
                    best_gain = gain
                    best_itemset = itemset
            if best_itemset is None:
                break
            cover.append(best_itemset)
            covered.update(best_itemset)
            remaining.remove(best_itemset)

        cover = frozenset(cover)
        return cover, self.cost_model.cost(transaction, cover, supported, weights)


class InferILP(InferenceAlgorithm):
    """Optimal cover as a binary integer program, solved with HiGHS.

    Variables are x_S for every selectable supported itemset and u_i for every
    transaction item, minimising

        sum (include_S - exclude_S) x_S + uncovered_cost * sum u_i

    subject to sum_{S containing i} x_S + u_i >= 1 for each item i. When the
    solver fails or runs out of time the transaction is explained greedily and
    the transaction is added to the fallbacks set.
    """

    name = 'exact'
    sequential_only = True

    def __init__(self, cost_model=None, time_limit=ILP_TIME_LIMIT):
        super(InferILP, self).__init__(cost_model)
        self.time_limit = time_limit
        self.greedy = InferGreedy(self.cost_model)
        # distinct transactions explained greedily after the solver failed, this run
        self.fallbacks = set()

    def reset(self):
        self.fallbacks = set()

    def infer(self, transaction, supported, weights):
        try:
            cover = self.solve(transaction, supported, weights)
        except InferenceError as e:
            logger.warning("Exact inference failed for %s (%s), reverting to greedy", transaction, e)
            self.fallbacks.add(transaction)
            return self.greedy.infer(transaction, supported, weights)
        return cover, self.cost_model.cost(transaction, cover, supported, weights)

    def solve(self, transaction, supported, weights):
        candidates = self.selectable(supported, weights)
        if not candidates:
            return frozenset()

        items = sorted(transaction)
        index = {item: row for row, item in enumerate(items)}
        no_of_sets = len(candidates)
        no_of_items = len(items)

        objective = np.empty(no_of_sets + no_of_items)
        coverage = np.zeros((no_of_items, no_of_sets + no_of_items))
        for column, itemset in enumerate(candidates):
            include, exclude = weights[itemset]
            objective[column] = include - exclude
            for item in itemset:
                coverage[index[item], column] = 1.0
        objective[no_of_sets:] = self.cost_model.uncovered_cost
        coverage[:, no_of_sets:] = np.eye(no_of_items)

        result = milp(objective,
                      constraints=LinearConstraint(coverage, lb=np.ones(no_of_items), ub=np.inf),
                      integrality=np.ones(no_of_sets + no_of_items),
                      bounds=Bounds(0, 1),
                      options={'time_limit': self.time_limit, 'mip_rel_gap': 0.0})
        if not result.success or result.x is None:
            raise InferenceError(result.message)

        return frozenset(itemset for column, itemset in enumerate(candidates) if result.x[column] > 0.5)


def make_inference(name, cost_model=None, **kwargs):
    if name == InferGreedy.name:
        return InferGreedy(cost_model)
    if name in (InferILP.name, 'ilp'):
        return InferILP(cost_model, **kwargs)
    raise ValueError("unknown inference algorithm %r, expected 'greedy' or 'exact'" % (name,))
