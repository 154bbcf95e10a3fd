import os
import math
import logging
from collections import namedtuple

import numpy as np
import pandas as pd

from itemsetminer.Itemset import Itemset, singleton_model
from itemsetminer.ItemsetTree import ItemsetTree
from itemsetminer.ItemsetCache import ItemsetCache
from itemsetminer.Executors import SerialExecutor
from itemsetminer.EMStep import EMStep, OPTIMIZE_TOL, PROBABILITY_FLOOR, MAX_OPTIMIZE_STEPS
from itemsetminer.InferenceAlgorithms import make_inference
from itemsetminer.StructuralSearch import StructuralSearch, SIMPLIFY_MAX_ITEMS, GROW
from itemsetminer.TransactionDatabase import (TransactionDatabase, read_transactions, read_dataframe,
                                              scan_singletons)
from itemsetminer.Associations import Associations, calculate_interestingness

logger = logging.getLogger(__name__)

# ################## Schedule and tolerances #############################
OPTIMIZE_PARAMS_EVERY = 1
SIMPLIFY_ITEMSETS_EVERY = 2
COMBINE_ITEMSETS_EVERY = 4
# structural EM stops once the average cost moves by less than this
AVG_COST_TOL = 1e-3
# materialize the distributed records every so many iterations to bound their lineage
CHECKPOINT_EVERY = 100

MAX_STRUCTURE_STEPS = 100000
MAX_EM_ITERATIONS = 100

IterationRecord = namedtuple('IterationRecord', ['iteration', 'structure', 'parameters', 'average_cost'])


class MiningTrace:
    """What a structural EM run did, iteration by iteration."""

    def __init__(self):
        self.iterations = list()
        self.warnings = list()
        self.converged = False
        self.stop_reason = None
        self.rejected = 0

    def warn(self, message):
        logger.warning(message)
        self.warnings.append(message)

    @property
    def average_cost(self):
        return self.iterations[-1].average_cost if self.iterations else math.inf


def scheduled(iteration, every):
    return bool(every) and iteration % every == 0


class StructuralEM:
    """Learns the itemset model by alternating structure search and parameter optimization.

    Every iteration grows the model from the itemset tree, except every
    combine_every-th iteration, which combines pairs of itemsets, and every
    simplify_every-th, which tries their subsets. Parameters are optimized on
    every optimize_every-th iteration. A schedule of 0 or None disables the phase.
    """

    def __init__(self, database, tree, inference, rng=None,
                 max_structure_steps=MAX_STRUCTURE_STEPS,
                 max_em_iterations=MAX_EM_ITERATIONS,
                 optimize_every=OPTIMIZE_PARAMS_EVERY,
                 simplify_every=SIMPLIFY_ITEMSETS_EVERY,
                 combine_every=COMBINE_ITEMSETS_EVERY,
                 avg_cost_tol=AVG_COST_TOL,
                 checkpoint_every=CHECKPOINT_EVERY,
                 optimize_tol=OPTIMIZE_TOL,
                 probability_floor=PROBABILITY_FLOOR,
                 max_optimize_steps=MAX_OPTIMIZE_STEPS,
                 max_simplify_items=SIMPLIFY_MAX_ITEMS):
        if max_em_iterations < 1:
            raise ValueError("max_em_iterations must be a positive integer")

        self.trace = MiningTrace()
        # recorded again in the trace of every run
        self.executor_warning = None
        if inference.sequential_only and not database.executor.sequential:
            self.executor_warning = ("Reverting to serial execution for %s inference (configured: %s)"
                                     % (inference.name, database.executor.name))
            database = database.with_executor(SerialExecutor())

        self.database = database
        self.inference = inference
        self.cache = ItemsetCache(database, inference)
        self.em = EMStep(self.cache, optimize_tol, probability_floor, max_optimize_steps)
        self.search = StructuralSearch(self.em, tree, rng, max_structure_steps, max_simplify_items)
        self.max_em_iterations = max_em_iterations
        self.optimize_every = optimize_every
        self.simplify_every = simplify_every
        self.combine_every = combine_every
        self.avg_cost_tol = avg_cost_tol
        self.checkpoint_every = checkpoint_every

    def run(self, itemsets):
        """Run structural EM from the initial model, which is updated in place and returned.

        Every run starts with a new trace and an empty rejected-candidate memo.
        """
        self.trace = MiningTrace()
        self.search.rejected = set()
        self.inference.reset()
        if self.executor_warning:
            self.trace.warn(self.executor_warning)

        self.em.initialize(itemsets)
        logger.debug(" Initial itemsets: %s, average cost: %.5f", itemsets, self.database.average_cost)

        prev_cost = math.inf
        for iteration in range(1, self.max_em_iterations + 1):

            # learn structure
            if scheduled(iteration, self.combine_every):
                logger.debug("----- Itemset Combination at Step %d", iteration)
                structure = self.search.combine_itemsets_step(itemsets)
            elif scheduled(iteration, self.simplify_every):
                logger.debug("----- Itemset Simplification at Step %d", iteration)
                structure = self.search.simplify_itemsets_step(itemsets)
            else:
                logger.debug("+++++ Tree Structural Optimization at Step %d", iteration)
                structure = self.search.learn_structure_step(itemsets)

            if structure.phase == GROW and structure.exhausted:
                self.trace.iterations.append(IterationRecord(iteration, structure, None,
                                                             self.database.average_cost))
                self.trace.stop_reason = 'structure steps exhausted'
                break
            logger.debug(" Average cost: %.5f", self.database.average_cost)

            # optimize parameters of new structure
            parameters = None
            if scheduled(iteration, self.optimize_every):
                logger.debug("***** Parameter Optimization at Step %d", iteration)
                parameters = self.em.optimize(itemsets)

            average_cost = self.database.average_cost
            self.trace.iterations.append(IterationRecord(iteration, structure, parameters, average_cost))

            # an unchanged cost is a plateau, not convergence
            if average_cost != prev_cost and abs(average_cost - prev_cost) < self.avg_cost_tol:
                logger.info("Average cost converged to within %g.", self.avg_cost_tol)
                self.trace.converged = True
                self.trace.stop_reason = 'converged'
                break
            prev_cost = average_cost

            if scheduled(iteration, self.checkpoint_every):
                self.database.checkpoint()

            if iteration == self.max_em_iterations:
                self.trace.stop_reason = 'iteration limit'
                self.trace.warn("EM iteration limit exceeded.")

        fallbacks = getattr(self.inference, 'fallbacks', None)
        if fallbacks:
            self.trace.warn("Exact inference reverted to greedy for %d distinct transactions" % len(fallbacks))
        self.trace.rejected = len(self.search.rejected)
        return itemsets


# a transaction file, a market-basket data frame or a sequence of transactions
def load_data(input_data):
    if isinstance(input_data, (str, os.PathLike)):
        return read_transactions(input_data)
    if isinstance(input_data, pd.DataFrame):
        return read_dataframe(input_data)
    try:
        return [Itemset(transaction) for transaction in input_data]
    except TypeError:
        raise ValueError("unsupported input data of type %s" % type(input_data).__name__) from None


class ItemsetMiner:
    """Mines the set of itemsets, with probabilities, that best explains a transaction database.

    :param
    @input_data - path of a transaction file, a market-basket pandas DataFrame or a list of transactions
    @max_structure_steps - candidates one structure step may propose before giving up
    @max_em_iterations - number of structural EM iterations
    @inference - 'greedy' (fast) or 'exact' (integer programming, always serial)
    @cost_model - CostModel used to score covers, CodeLengthCost by default
    @executor - SerialExecutor (default), ThreadExecutor or SparkExecutor
    @random_state - seed or numpy Generator for the itemset tree walk
    @optimize_every, simplify_every, combine_every - the iteration schedule, 0 disables a phase
    @avg_cost_tol - convergence tolerance on the average cost
    @checkpoint_every - outer iterations between forced checkpoints of the distributed records

    This program is free software: you can redistribute it and/or modify it under the terms of the
    GNU General Public License as published by the Free Software Foundation, either version 3 of the License, or
    (at your option) any later version.

    This program is distributed in the hope that it will be useful, but WITHOUT ANY WARRANTY; without even the
    implied warranty of MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the GNU General Public License
    for more details.

    You should have received a copy of the GNU General Public License along with this program.
    If not, see <http://www.gnu.org/licenses/>.
    """

    def __init__(self,
                 input_data,
                 max_structure_steps=MAX_STRUCTURE_STEPS,
                 max_em_iterations=MAX_EM_ITERATIONS,
                 inference='greedy',
                 cost_model=None,
                 executor=None,
                 random_state=None,
                 optimize_every=OPTIMIZE_PARAMS_EVERY,
                 simplify_every=SIMPLIFY_ITEMSETS_EVERY,
                 combine_every=COMBINE_ITEMSETS_EVERY,
                 avg_cost_tol=AVG_COST_TOL,
                 checkpoint_every=CHECKPOINT_EVERY
                 ):
        self.input_data = input_data
        self.max_structure_steps = max_structure_steps
        self.max_em_iterations = max_em_iterations
        self.inference = make_inference(inference, cost_model)
        self.executor = executor
        self.rng = np.random.default_rng(random_state)
        self.optimize_every = optimize_every
        self.simplify_every = simplify_every
        self.combine_every = combine_every
        self.avg_cost_tol = avg_cost_tol
        self.checkpoint_every = checkpoint_every

    def fit(self):

        # read in transaction database
        transactions = load_data(self.input_data)
        if not transactions:
            raise ValueError("no transactions to mine")
        no_of_transactions = len(transactions)

        # determine the support of single items
        singletons = scan_singletons(transactions)

        # build the itemset tree
        tree = ItemsetTree().build_tree(transactions, singletons)
        logger.debug("Itemset tree: %s", tree.statistics())

        database = TransactionDatabase(transactions, self.executor)
        driver = StructuralEM(database, tree, self.inference, self.rng,
                              max_structure_steps=self.max_structure_steps,
                              max_em_iterations=self.max_em_iterations,
                              optimize_every=self.optimize_every,
                              simplify_every=self.simplify_every,
                              combine_every=self.combine_every,
                              avg_cost_tol=self.avg_cost_tol,
                              checkpoint_every=self.checkpoint_every)
        itemsets = driver.run(singleton_model(singletons, no_of_transactions))

        counts = driver.cache.containing_counts(itemsets)
        interestingness = calculate_interestingness(itemsets, counts, no_of_transactions)
        associations = Associations(itemsets, interestingness, driver.trace)
        for itemset, p in associations:
            logger.info("%s\tprob: %1.5f \tint: %1.5f", itemset, p, interestingness[itemset])
        return associations
