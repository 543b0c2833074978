from py_pinyin.model import Match, MatchResult
from py_pinyin.stores import Statistics, Transaction
from py_pinyin.utils import create_logger

INITIAL_SEED = 69
EXPAND_FACTOR = 2
UNIGRAM_FACTOR = 7
PINYIN_FACTOR = 1
CEILING_SEED = 22080
MAX_FREQUENCY = 2**32 - 1


def compute_seed(existing_freq: int | None) -> int:
    """Frequency increment for a continuation; None means the continuation is new to the record."""
    if existing_freq is None:
        return INITIAL_SEED
    return min(CEILING_SEED, max(existing_freq, INITIAL_SEED) * EXPAND_FACTOR)


def train_pair(txn: Transaction, prev_token: int, match: Match) -> int:
    """Stages the update for one (prev, cur) pair and returns the seed applied, 0 if skipped."""
    if txn.snapshot.phrase_index.get_item(match.token) is None:
        raise ValueError(f"Token {match.token} is not in the phrase index.")
    record = txn.load_user_gram(prev_token)
    existing_freq = record.get_freq(match.token)
    seed = compute_seed(existing_freq)
    if record.total_freq + seed > MAX_FREQUENCY:
        return 0

    if existing_freq is None:
        record.insert_freq(match.token, 0)
        existing_freq = 0
    record.total_freq += seed
    record.set_freq(match.token, existing_freq + seed)
    txn.store_user_gram(prev_token, record)
    txn.increase_pronunciation(match.token, match.keys, seed * PINYIN_FACTOR)
    txn.add_unigram_frequency(match.token, seed * UNIGRAM_FACTOR)
    return seed


def train_match(statistics: Statistics, result: MatchResult, verbose: bool = False) -> bool:
    """Feeds an accepted phrase sequence back into the user statistics.

    Every consecutive (prev, cur) pair, starting from the result's prefix token,
    is committed in its own transaction. A failure to persist a pair, or a
    token missing from the phrase index, stops training: earlier pairs stay
    committed and nothing of the failing pair is applied.

    Returns:
        True if every pair was committed
    """
    logger = create_logger("train", verbose)
    prev_token = result.prefix
    seeds = []
    for match in result.matches:
        try:
            with statistics.transaction() as txn:
                seed = train_pair(txn, prev_token, match)
        except (OSError, ValueError) as e:
            logger.error(f"❌ Failed to commit training pair ({prev_token}, {match.token}): {e}")
            return False
        if seed == 0:
            logger.debug(f"   ├─ Skipped ({prev_token}, {match.token}): frequency would overflow")
        else:
            logger.debug(f"   ├─ ({prev_token}, {match.token}) seed = {seed}")
        seeds.append(seed)
        prev_token = match.token

    logger.info(f"🎓 Trained {sum(seed > 0 for seed in seeds)} of {len(seeds)} phrase pairs")
    if seeds:
        logger.debug(f"   └─ Total seed {sum(seeds):,}")
    return True
