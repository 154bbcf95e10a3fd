import math

# nats charged for every transaction item that no itemset of the cover explains
UNCOVERED_ITEM_COST = 20.0

# probabilities are clamped to [EPSILON, 1 - EPSILON] wherever a log would diverge
EPSILON = 1e-12


class CostModel:
    """Scores how well a cover explains a transaction, lower is better.

    A model is first turned into weights, {itemset: (include_cost, exclude_cost)},
    then the cost of a cover C of transaction T with supported itemsets
    (the model itemsets contained in T) is

        sum of include_cost over C
        + sum of exclude_cost over the supported itemsets not in C
        + uncovered_cost for every item of T outside the union of C

    Both per-itemset costs are non-negative, so the cost is too, and it is linear
    in the choice of cover.
    """

    def __init__(self, uncovered_cost=UNCOVERED_ITEM_COST):
        if uncovered_cost <= 0:
            raise ValueError("uncovered_cost must be positive")
        self.uncovered_cost = uncovered_cost

    def weigh(self, itemsets):
        raise NotImplementedError

    def cost(self, transaction, cover, supported, weights):
        total = 0.0
        covered = set()
        for itemset in cover:
            total += weights[itemset][0]
            covered.update(itemset)
        for itemset in supported:
            if itemset not in cover:
                total += weights[itemset][1]
        return total + self.uncovered_cost * len(transaction.difference(covered))

    # change in cost from adding itemset to a cover that already explains covered
    def gain(self, itemset, covered, weights):
        include, exclude = weights[itemset]
        return self.uncovered_cost * len(itemset.difference(covered)) - (include - exclude)


class CodeLengthCost(CostModel):
    """Each itemset in a cover costs its code length under the normalised model.

    The model probabilities are not a distribution (itemsets overlap), so they
    are normalised before taking the code length. Itemsets left out cost nothing
    and an itemset with zero probability can never be part of a cover.
    """

    def weigh(self, itemsets):
        total = math.fsum(itemsets.values())
        weights = dict()
        for itemset, p in itemsets.items():
            if p > 0:
                weights[itemset] = (-math.log(p / total), 0.0)
            else:
                weights[itemset] = (math.inf, 0.0)
        return weights


class LikelihoodCost(CostModel):
    """Negative log-likelihood of the independent itemset inclusion model."""

    def weigh(self, itemsets):
        weights = dict()
        for itemset, p in itemsets.items():
            p = min(max(p, EPSILON), 1.0 - EPSILON)
            weights[itemset] = (-math.log(p), -math.log(1.0 - p))
        return weights
