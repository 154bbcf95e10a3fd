import numpy as np

from itemsetminer.Itemset import Itemset


class ItemsetTreeNode:

    __slots__ = ('item', 'count', 'children')

    def __init__(self, item=None, count=0):
        self.item = item
        self.count = count
        # child nodes {item: ItemsetTreeNode}, most frequent first once the tree is built
        self.children = {}


class ItemsetTree:
    """Frequency weighted prefix tree over the transaction database.

    Every transaction is inserted with its items ordered by descending support,
    as in an FP-tree. A node's count is the number of transactions whose path
    passes through it, so count minus the children's counts is the number of
    transactions that end exactly there.
    """

    def __init__(self):
        self.root = ItemsetTreeNode()
        self.no_of_nodes = 0

    def build_tree(self, transactions, singletons):
        for transaction in transactions:
            items = sorted(transaction, key=lambda item: (-singletons[item], item))
            node = self.root
            node.count += 1
            for item in items:
                child = node.children.get(item)
                if child is None:
                    child = ItemsetTreeNode(item)
                    node.children[item] = child
                    self.no_of_nodes += 1
                child.count += 1
                node = child

        # fix the child order so that a seeded walk is reproducible
        stack = [self.root]
        while stack:
            node = stack.pop()
            ordered = sorted(node.children.values(), key=lambda child: (-child.count, child.item))
            node.children = {child.item: child for child in ordered}
            stack.extend(ordered)
        return self

    def random_walk(self, rng=None):
        """Sample a candidate itemset by walking down from the root.

        At each node the walk either stops, with weight equal to the number of
        transactions ending at the node, or moves to a child with weight equal
        to the child's count. The returned itemset may be empty.
        """
        if rng is None:
            rng = np.random.default_rng()

        items = list()
        node = self.root
        while node.children and node.count > 0:
            draw = rng.random() * node.count
            cumulative = node.count - sum(child.count for child in node.children.values())
            if draw < cumulative:
                break
            next_node = None
            for child in node.children.values():
                cumulative += child.count
                if draw < cumulative:
                    next_node = child
                    break
            if next_node is None:
                # draw landed on the upper boundary
                next_node = list(node.children.values())[-1]
            items.append(next_node.item)
            node = next_node

        return Itemset(items)

    def statistics(self):
        depth = 0
        internal = 0
        edges = 0
        stack = [(self.root, 0)]
        while stack:
            node, level = stack.pop()
            depth = max(depth, level)
            if node.children:
                internal += 1
                edges += len(node.children)
            stack.extend((child, level + 1) for child in node.children.values())

        return {'nodes': self.no_of_nodes,
                'transactions': self.root.count,
                'depth': depth,
                'mean_branching': edges / internal if internal else 0.0}

    def __str__(self):
        lines = list()
        stack = [(child, 0) for child in reversed(list(self.root.children.values()))]
        while stack:
            node, level = stack.pop()
            lines.append("%s%d (%d)" % ("  " * level, node.item, node.count))
            stack.extend((child, level + 1) for child in reversed(list(node.children.values())))
        return "\n".join(lines)
