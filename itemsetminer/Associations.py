from collections import OrderedDict

import pandas as pd

from itemsetminer.Itemset import Itemset, itemset_order


# ############################# Class Rule #############################
class Rule:

    def __init__(self, antecedent, consequent, probability):
        self.antecedent = antecedent
        self.consequent = consequent
        self.probability = probability

    def __eq__(self, other):
        return isinstance(other, Rule) and (self.antecedent, self.consequent) == (other.antecedent, other.consequent)

    def __hash__(self):
        return hash((self.antecedent, self.consequent))

    def __repr__(self):
        return "%s => %s\tprob: %1.2f" % (self.antecedent, self.consequent, self.probability)


# i(S) = p(S)|T| / |{T : S in T}|, the share of the transactions containing S that S itself explains
def calculate_interestingness(itemsets, containing_counts, no_of_transactions):
    interestingness = dict()
    for itemset, p in itemsets.items():
        support = containing_counts[itemset]
        interestingness[itemset] = p * no_of_transactions / support if support else 0.0
    return interestingness


def iter_rules(itemset, probability):
    """Every split of itemset into a non-empty antecedent and consequent, once each.

    Items are moved from the antecedent to the consequent one at a time using an
    explicit stack, so the depth is bounded by the size of the itemset.
    """
    visited = {itemset}
    stack = [itemset]
    while stack:
        antecedent = stack.pop()
        if len(antecedent) < 2:
            continue
        for item in sorted(antecedent, reverse=True):
            new_antecedent = Itemset(antecedent - {item})
            if new_antecedent in visited:
                continue
            visited.add(new_antecedent)
            yield Rule(new_antecedent, Itemset(itemset - new_antecedent), probability)
            stack.append(new_antecedent)


class Associations:
    """Mined itemsets ordered by probability, then interestingness.

    :param
    @itemsets - {Itemset: probability} of the final model
    @interestingness - {Itemset: interestingness}
    @trace - MiningTrace of the structural EM run that produced the model
    """

    def __init__(self, itemsets, interestingness=None, trace=None):
        if interestingness is None:
            interestingness = dict()
        ordered = sorted(itemsets.items(),
                         key=lambda entry: (-entry[1], -interestingness.get(entry[0], 0.0),
                                            itemset_order(entry[0])))
        self.itemsets = OrderedDict(ordered)
        self.interestingness = interestingness
        self.trace = trace

    def __len__(self):
        return len(self.itemsets)

    def __iter__(self):
        return iter(self.itemsets.items())

    def rules(self):
        rules = list()
        for itemset, p in self.itemsets.items():
            rules.extend(iter_rules(itemset, p))
        return rules

    def to_frame(self):
        return pd.DataFrame({'itemset': [sorted(itemset) for itemset in self.itemsets],
                             'size': [len(itemset) for itemset in self.itemsets],
                             'probability': list(self.itemsets.values()),
                             'interestingness': [self.interestingness.get(itemset, 0.0)
                                                 for itemset in self.itemsets]})

    def save(self, output_file):
        with open(output_file, 'w', encoding='utf-8') as f:
            f.write("# probability items\n")
            for itemset, p in self.itemsets.items():
                f.write("%r %s\n" % (p, " ".join(str(item) for item in sorted(itemset))))


# read a model written by Associations.save, one "probability item item ..." per line
def read_itemsets(input_file):
    itemsets = OrderedDict()
    with open(input_file, 'r', encoding='utf-8') as f:
        for line_no, line in enumerate(f, start=1):
            line = line.strip()
            if not line or line.startswith('#'):
                continue
            fields = line.split()
            try:
                itemsets[Itemset(int(item) for item in fields[1:])] = float(fields[0])
            except ValueError:
                raise ValueError("%s:%d: malformed itemset %r" % (input_file, line_no, line)) from None
    return itemsets
