import sys

from py_pinyin import PhoneticDecoder, PhoneticMatrix, build_statistics, split_syllables, train_match
from py_pinyin.stores import SENTENCE_START

# token, text, keys, freq
DEMO_PHRASES = [
    (10, "你", ("ni",), 1200),
    (11, "泥", ("ni",), 90),
    (12, "好", ("hao",), 900),
    (13, "号", ("hao",), 300),
    (14, "你好", ("ni", "hao"), 500),
    (15, "世", ("shi",), 200),
    (16, "是", ("shi",), 2500),
    (17, "事", ("shi",), 700),
    (18, "界", ("jie",), 150),
    (19, "姐", ("jie",), 250),
    (20, "世界", ("shi", "jie"), 600),
    (21, "视界", ("shi", "jie"), 40),
    (22, "中", ("zhong",), 1100),
    (23, "国", ("guo",), 800),
    (24, "中国", ("zhong", "guo"), 900),
    (25, "人", ("ren",), 1500),
    (26, "中国人", ("zhong", "guo", "ren"), 120),
    (27, "我", ("wo",), 2000),
    (28, "们", ("men",), 900),
    (29, "我们", ("wo", "men"), 1300),
]

DEMO_BIGRAMS = {
    SENTENCE_START: {14: 40, 27: 60, 29: 50, 24: 10},
    14: {20: 12, 16: 3},
    29: {16: 30, 26: 5},
    27: {16: 40},
    16: {24: 8, 26: 6},
    24: {25: 9},
}


def main(text="ni'hao shi'jie", bigram_lambda=0.5):
    print("\033[1;34m📚 Building demo statistics...\033[0m")
    statistics = build_statistics(DEMO_PHRASES, DEMO_BIGRAMS)
    decoder = PhoneticDecoder(statistics, bigram_lambda=bigram_lambda, verbose=True)
    matrix = PhoneticMatrix.from_syllables(split_syllables(text))
    print(f"  ✨ {len(DEMO_PHRASES)} phrases, {matrix.size} syllables")

    print("\n\033[1;32m🎯 Decoding\033[0m")
    results = decoder.decode_nbest(matrix, 5)
    if not results:
        print(f"\033[1;31m🚫 No phrase sequence for {text!r}\033[0m")
        return
    for rank, result in enumerate(results, 1):
        phrases = " ".join(statistics.phrase_index.to_text([token]) for token in result.tokens)
        print(f"  {rank}. \033[1m{phrases}\033[0m  score = {result.score:.4f}")

    # accept the last alternative, as if the user picked it
    accepted = results[-1]
    print(f"\n\033[1;35m🎓 Training on {statistics.phrase_index.to_text(accepted.tokens)!r}\033[0m")
    if not train_match(statistics, accepted, verbose=True):
        print("\033[1;31m❌ Training failed\033[0m")
        return

    best = decoder.decode(matrix)
    print(f"\n\033[1;32m✨ Now decodes to {statistics.phrase_index.to_text(best.tokens)!r} (score {best.score:.4f})\033[0m")


if __name__ == "__main__":
    main(*sys.argv[1:2])
