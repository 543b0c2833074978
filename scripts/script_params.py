import argparse

import numpy as np
from tabulate import tabulate

from demo.decode_pinyin import DEMO_BIGRAMS, DEMO_PHRASES
from py_pinyin import PhoneticDecoder, PhoneticMatrix, build_statistics, split_syllables

DEFAULT_INPUTS = ["ni'hao shi'jie", "wo'men shi zhong'guo'ren", "zhong'guo ren", "ni shi wo'men"]


def sweep_lambdas(inputs, bigram_lambdas=None, nbeams=(1, 4, 32)):
    if bigram_lambdas is None:
        bigram_lambdas = np.linspace(0.0, 1.0, 5)
    statistics = build_statistics(DEMO_PHRASES, DEMO_BIGRAMS)
    matrices = [PhoneticMatrix.from_syllables(split_syllables(text)) for text in inputs]
    results = []
    for bigram_lambda in bigram_lambdas:
        for nbeam in nbeams:
            decoder = PhoneticDecoder(statistics, nbeam=nbeam, bigram_lambda=float(bigram_lambda), verbose=False)
            row = [f"{bigram_lambda:.3f}", nbeam]
            for matrix in matrices:
                result = decoder.decode(matrix)
                if result is None:
                    row.append("-")
                else:
                    phrases = " ".join(statistics.phrase_index.to_text([token]) for token in result.tokens)
                    row.append(f"{phrases} ({result.score:.2f})")
            results.append(row)
    return results


def parse_arguments():
    parser = argparse.ArgumentParser(description="Compare decodes across interpolation weights and beam widths.")
    parser.add_argument("inputs", nargs="*", default=DEFAULT_INPUTS, help="Apostrophe or space delimited pinyin")
    parser.add_argument("--steps", type=int, default=5, help="Number of bigram lambda values in [0, 1]")
    return parser.parse_args()


if __name__ == "__main__":
    args = parse_arguments()
    rows = sweep_lambdas(args.inputs, np.linspace(0.0, 1.0, args.steps))
    print(
        "\n"
        + tabulate(
            rows,
            headers=["Bigram λ", "Beam"] + args.inputs,
            tablefmt="grid",
            stralign="right",
            numalign="right",
        )
    )
