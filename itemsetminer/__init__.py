from itemsetminer.Itemset import Itemset
from itemsetminer.ItemsetMiner import ItemsetMiner, StructuralEM, MiningTrace
from itemsetminer.Associations import Associations, Rule, read_itemsets
from itemsetminer.TransactionDatabase import TransactionDatabase, TransactionParseError, read_transactions
from itemsetminer.Executors import SerialExecutor, ThreadExecutor, SparkExecutor
from itemsetminer.CostModel import CodeLengthCost, LikelihoodCost
from itemsetminer.InferenceAlgorithms import InferGreedy, InferILP
from itemsetminer.EMStep import InconsistentCostError
