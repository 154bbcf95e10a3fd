# ############################# Class Itemset #############################
class Itemset(frozenset):
    """A set of item ids treated as one unit of the model.

    Itemsets are hashable and never change once created, so the model, the
    rejected-candidate memo and the per-transaction cache can all key on them.
    """

    __slots__ = ()

    def __new__(cls, items=()):
        return super(Itemset, cls).__new__(cls, (int(item) for item in items))

    # frozenset operators return plain frozensets, keep the Itemset type
    def __or__(self, other):
        return Itemset(frozenset.__or__(self, other))

    def union(self, *others):
        return Itemset(frozenset.union(self, *others))

    def contains(self, other):
        return other <= self

    def __repr__(self):
        return "{" + ", ".join(str(item) for item in sorted(self)) + "}"

    __str__ = __repr__


# total order used wherever itemsets are visited one after the other: smallest first, then by items
def itemset_order(itemset):
    return len(itemset), tuple(sorted(itemset))


# every singleton with its relative support
def singleton_model(singletons, no_of_transactions):
    model = dict()
    for item in sorted(singletons):
        model[Itemset([item])] = singletons[item] / no_of_transactions
    return model
