"""
Text Normalization for Lexicon Scoring

Pipeline applied to every document before lexicon lookup:
- Strip URLs and @mentions
- Expand abbreviations ("dr." -> "doctor")
- Expand contractions ("can't" -> "can not")
- Replace symbols ("&" -> "and", "%" -> "percent")
- Spell out ordinals ("3rd" -> "third", "21st" -> "twenty first")
- Lowercase and split into alphabetic word tokens
"""
import re
from typing import Dict, List


URL_PATTERN = re.compile(r'(?:https?://|www\.)\S+', re.IGNORECASE)
MENTION_PATTERN = re.compile(r'(?<!\w)@\w+')
TOKEN_PATTERN = re.compile(r"(?<![a-z0-9])[a-z]+(?:'[a-z]+)*(?![a-z0-9])")

ABBREVIATIONS: Dict[str, str] = {
    'dr.': 'doctor',
    'mr.': 'mister',
    'mrs.': 'misses',
    'ms.': 'miss',
    'jr.': 'junior',
    'sr.': 'senior',
    'st.': 'street',
    'ave.': 'avenue',
    'dept.': 'department',
    'govt.': 'government',
    'govt': 'government',
    'approx.': 'approximately',
    'vs.': 'versus',
    'etc.': 'et cetera',
    'e.g.': 'for example',
    'i.e.': 'that is',
    'u.s.': 'united states',
    'u.k.': 'united kingdom',
    'asap': 'as soon as possible',
    'pls': 'please',
    'plz': 'please',
    'thx': 'thanks',
    'b/c': 'because',
    'w/o': 'without',
    'w/': 'with',
}

CONTRACTIONS: Dict[str, str] = {
    "won't": "will not",
    "can't": "can not",
    "shan't": "shall not",
    "ain't": "is not",
    "let's": "let us",
    "y'all": "you all",
    "it's": "it is",
    "that's": "that is",
    "there's": "there is",
    "here's": "here is",
    "what's": "what is",
    "who's": "who is",
    "he's": "he is",
    "she's": "she is",
}

# applied after CONTRACTIONS, to any word
CONTRACTION_SUFFIXES: Dict[str, str] = {
    "n't": " not",
    "'re": " are",
    "'ve": " have",
    "'ll": " will",
    "'d": " would",
    "'m": " am",
}

SYMBOLS: Dict[str, str] = {
    '&': ' and ',
    '%': ' percent ',
    '$': ' dollar ',
    '+': ' plus ',
    '=': ' equals ',
    '@': ' at ',
}

_ONES = [
    '', 'one', 'two', 'three', 'four', 'five', 'six', 'seven', 'eight', 'nine',
    'ten', 'eleven', 'twelve', 'thirteen', 'fourteen', 'fifteen', 'sixteen',
    'seventeen', 'eighteen', 'nineteen',
]
_TENS = ['', '', 'twenty', 'thirty', 'forty', 'fifty', 'sixty', 'seventy', 'eighty', 'ninety']
_ORDINAL_IRREGULAR = {
    'one': 'first', 'two': 'second', 'three': 'third', 'five': 'fifth',
    'eight': 'eighth', 'nine': 'ninth', 'twelve': 'twelfth',
}
ORDINAL_PATTERN = re.compile(r'\b(\d+)(?:st|nd|rd|th)\b')


def _cardinal_word(n: int) -> str:
    if n == 100:
        return 'one hundred'
    if n < 20:
        return _ONES[n]
    tens, ones = divmod(n, 10)
    return _TENS[tens] + (f' {_ONES[ones]}' if ones else '')


def ordinal_word(n: int) -> str:
    """Spell out an ordinal for 1..100 ("21" -> "twenty first")."""
    if not 1 <= n <= 100:
        raise ValueError(f"Ordinal out of supported range: {n}")
    words = _cardinal_word(n).split()
    last = words[-1]
    if last in _ORDINAL_IRREGULAR:
        words[-1] = _ORDINAL_IRREGULAR[last]
    elif last.endswith('y'):
        words[-1] = last[:-1] + 'ieth'
    else:
        words[-1] = last + 'th'
    return ' '.join(words)


def replace_ordinals(text: str) -> str:
    """Spell out 1st..100th; larger ordinals are left untouched."""
    def _sub(match):
        n = int(match.group(1))
        return ordinal_word(n) if 1 <= n <= 100 else match.group(0)
    return ORDINAL_PATTERN.sub(_sub, text)


def _replace_terms(text: str, table: Dict[str, str]) -> str:
    # longest first so "w/o" wins over "w/"
    for term in sorted(table, key=len, reverse=True):
        if term[0].isalpha():
            pattern = r'(?<![\w.])' + re.escape(term) + r'(?!\w)'
        else:
            pattern = re.escape(term)
        text = re.sub(pattern, table[term], text)
    return text


def replace_contractions(text: str) -> str:
    for term, expansion in CONTRACTIONS.items():
        text = re.sub(r"(?<![\w'])" + re.escape(term) + r"(?![\w'])", expansion, text)
    for suffix, expansion in CONTRACTION_SUFFIXES.items():
        text = re.sub(r"(?<=\w)" + re.escape(suffix) + r"(?![\w'])", expansion, text)
    return text


def replace_symbols(text: str) -> str:
    # a '#' tags a word (hashtag) unless a number follows
    text = re.sub(r'#(?=\d)', ' number ', text)
    text = text.replace('#', ' ')
    for symbol, word in SYMBOLS.items():
        text = text.replace(symbol, word)
    return text


def normalize_text(text: str) -> str:
    """
    Normalize raw post text into a lowercase, expanded string.

    Args:
        text: Raw document text

    Returns:
        Normalized text ready for tokenize()
    """
    if not isinstance(text, str) or not text:
        return ''

    text = text.replace('’', "'").replace('‘', "'")
    text = URL_PATTERN.sub(' ', text)
    text = MENTION_PATTERN.sub(' ', text)
    text = text.lower()
    text = _replace_terms(text, ABBREVIATIONS)
    text = replace_contractions(text)
    text = replace_ordinals(text)
    text = replace_symbols(text)
    return re.sub(r'\s+', ' ', text).strip()


def tokenize(text: str) -> List[str]:
    """Split normalized text into word tokens; punctuation and digits are dropped."""
    return [token.replace("'", '') for token in TOKEN_PATTERN.findall(text)]


def text_to_tokens(text: str) -> List[str]:
    return tokenize(normalize_text(text))
