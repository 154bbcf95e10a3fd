import math
import logging
from collections import Counter

import pandas as pd

from itemsetminer.Itemset import Itemset
from itemsetminer.ItemsetCache import CacheRecord
from itemsetminer.Executors import SerialExecutor

logger = logging.getLogger(__name__)

# lines starting with one of these are comments or metadata
COMMENT_PREFIXES = ('#', '%', '@')


class TransactionParseError(ValueError):

    def __init__(self, source, line_no, line):
        self.source = source
        self.line_no = line_no
        self.line = line
        super(TransactionParseError, self).__init__(
            "%s:%d: malformed transaction %r" % (source, line_no, line))


def parse_transaction(line, source='<input>', line_no=0):
    items = list()
    for token in line.split():
        try:
            item = int(token)
        except ValueError:
            raise TransactionParseError(source, line_no, line) from None
        if item < 0:
            raise TransactionParseError(source, line_no, line)
        items.append(item)
    return Itemset(items)


# one transaction per line, whitespace separated non-negative item ids
def read_transactions(input_file):
    transactions = list()
    with open(input_file, 'r', encoding='utf-8') as f:
        for line_no, line in enumerate(f, start=1):
            line = line.strip()
            # if the line is empty, a comment or a kind of metadata
            if not line or line.startswith(COMMENT_PREFIXES):
                continue
            transactions.append(parse_transaction(line, str(input_file), line_no))

    logger.debug("Read %d transactions from %s", len(transactions), input_file)
    return transactions


# market-basket data frame, one transaction per row, blank cells are ignored
def read_dataframe(input_data):
    transactions = list()
    for row_no, row in enumerate(input_data.itertuples(index=False), start=1):
        cells = list()
        for value in row:
            if pd.isna(value) or str(value).strip() == '':
                continue
            # ragged rows come back as float columns padded with NaN
            if isinstance(value, float) and value.is_integer():
                value = int(value)
            cells.append(str(value).strip())
        transactions.append(parse_transaction(' '.join(cells), '<DataFrame>', row_no))
    return transactions


# the support count of every single item
def scan_singletons(transactions):
    singletons = Counter()
    for transaction in transactions:
        singletons.update(transaction)
    return singletons


class TransactionDatabase:
    """The transactions plus their cache records, laid out by an execution strategy.

    :param
    @transactions - sequence of Itemsets, one per observed transaction
    @executor - SerialExecutor, ThreadExecutor or SparkExecutor; serial by default
    """

    def __init__(self, transactions, executor=None):
        self.executor = executor if executor is not None else SerialExecutor()
        self._transactions = list(transactions)
        self.records = self.executor.distribute(CacheRecord(t) for t in self._transactions)
        self.average_cost = math.inf

    def size(self):
        return len(self._transactions)

    __len__ = size

    @property
    def transactions(self):
        return self._transactions

    def map_records(self, func):
        self.records = self.executor.map(self.records, func)

    def aggregate(self, zero, seq_op, comb_op):
        return self.executor.aggregate(self.records, zero, seq_op, comb_op)

    def collect(self):
        return self.executor.collect(self.records)

    def checkpoint(self):
        self.records = self.executor.checkpoint(self.records)

    # same transactions and cache state under another execution strategy
    def with_executor(self, executor):
        database = TransactionDatabase.__new__(TransactionDatabase)
        database.executor = executor
        database._transactions = self._transactions
        database.records = executor.distribute(self.collect())
        database.average_cost = self.average_cost
        return database
