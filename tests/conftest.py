import pytest

from py_pinyin.matrix import PhoneticMatrix
from py_pinyin.stores import SENTENCE_START, build_statistics

# token, text, keys, freq
PHRASES = [
    (10, "你", ("ni",), 100),
    (11, "泥", ("ni",), 20),
    (12, "好", ("hao",), 80),
    (13, "号", ("hao",), 30),
    (14, "你好", ("ni", "hao"), 50),
    (15, "世", ("shi",), 40),
    (16, "是", ("shi",), 200),
    (17, "界", ("jie",), 30),
    (18, "世界", ("shi", "jie"), 60),
    (19, "姐", ("jie",), 25),
]

BIGRAMS = {
    SENTENCE_START: {14: 10, 10: 5},
    14: {18: 8},
    10: {12: 2},
}


@pytest.fixture
def statistics():
    return build_statistics(PHRASES, BIGRAMS)


@pytest.fixture
def nihao_shijie():
    return PhoneticMatrix.from_syllables(["ni", "hao", "shi", "jie"])
