"""
Latin -> Cyrillic transliteration of card holder names.

Card holder names on Belarusian/Russian cards are embossed in Latin using a
mix of passport (BGN/PCGN-like) and Belarusian conventions, while CRM contacts
are usually stored in Cyrillic. The result is a search aid only: the mapping is
lossy and many-to-one.
"""

from typing import Dict


# Multi-letter sequences must be tried before single letters
TRANSLIT_MAP: Dict[str, str] = {
    "shch": "щ",
    "ya": "я", "ia": "я",
    "yu": "ю", "iu": "ю",
    "ye": "е", "ie": "е",
    "yi": "ї",
    "zh": "ж",
    "kh": "х",
    "ts": "ц",
    "ch": "ч",
    "sh": "ш",
    "yo": "ё",
    "a": "а", "b": "б", "v": "в", "w": "в", "g": "г",
    "h": "г",  # Belarusian H is Г
    "d": "д", "e": "е", "z": "з", "i": "и", "y": "й",
    "k": "к", "l": "л", "m": "м", "n": "н", "o": "о",
    "p": "п", "r": "р", "s": "с", "t": "т", "u": "у",
    "f": "ф", "c": "ц", "'": "ь",
}

_MAX_KEY_LENGTH = max(len(key) for key in TRANSLIT_MAP)

# Known names whose conventional Cyrillic spelling differs from a literal transliteration
NAME_CORRECTIONS: Dict[str, str] = {
    # First names, female
    "AKSANA": "Оксана",
    "ALENA": "Алёна",
    "ALIAKSANDRA": "Александра",
    "ANASTASIA": "Анастасия",
    "ANASTASIIA": "Анастасия",
    "ANASTASIYA": "Анастасия",
    "ANHELINA": "Ангелина",
    "ANTANINA": "Антонина",
    "DARIA": "Дарья",
    "DARYA": "Дарья",
    "DZIYANA": "Диана",
    "HANNA": "Анна",
    "IRYNA": "Ирина",
    "KATSIARYNA": "Екатерина",
    "KRYSTYNA": "Кристина",
    "LARYSA": "Лариса",
    "LIUDMILA": "Людмила",
    "LIUDMILLA": "Людмила",
    "LUDMILA": "Людмила",
    "MARHARYTA": "Маргарита",
    "MARIA": "Мария",
    "MARYIA": "Мария",
    "MARYNA": "Марина",
    "NATALLIA": "Наталья",
    "NATALIA": "Наталья",
    "OLGA": "Ольга",
    "PALINA": "Полина",
    "SVIATLANA": "Светлана",
    "TATSIANA": "Татьяна",
    "TATIANA": "Татьяна",
    "VALERYIA": "Валерия",
    "VALIANTSINA": "Валентина",
    "VALIANTSYNA": "Валентина",
    "VERANIIKA": "Вероника",
    "VIKTORYIA": "Виктория",
    "VOLHA": "Ольга",
    "YELENA": "Елена",
    "YELIZAVETA": "Елизавета",
    "YULIYA": "Юлия",
    "YULIA": "Юлия",
    "YULIIA": "Юлия",
    "ZHANNA": "Жанна",
    # First names, male
    "ALIAKSANDR": "Александр",
    "ALIAKSEI": "Алексей",
    "ALIAKSEJ": "Алексей",
    "ANDREI": "Андрей",
    "ARTEM": "Артём",
    "ARTSIOM": "Артём",
    "DZMITRY": "Дмитрий",
    "DMITRY": "Дмитрий",
    "HENADZ": "Геннадий",
    "HENADZI": "Геннадий",
    "KANSTANTSIN": "Константин",
    "KIRYL": "Кирилл",
    "KIRILL": "Кирилл",
    "MAXIM": "Максим",
    "MIKALAI": "Николай",
    "MIKHAIL": "Михаил",
    "MIKITA": "Никита",
    "PAVIEL": "Павел",
    "SERGEI": "Сергей",
    "SERGEY": "Сергей",
    "SIARHEI": "Сергей",
    "SIARHEY": "Сергей",
    "ULADZIMIR": "Владимир",
    "ULADZISLAU": "Владислав",
    "VIKTAR": "Виктор",
    "YAUHENI": "Евгений",
    "YAUHENIA": "Евгения",
    "YAUHEN": "Евгений",
    # Surnames
    "BARYSENKA": "Борисенко",
    "DABRAVOLSKAYA": "Добровольская",
    "HANCHARUK": "Гончарук",
    "HRYHORYEVA": "Григорьева",
    "KLIMENKA": "Клименко",
    "KUZNIATSOVA": "Кузнецова",
    "MAROZAVA": "Морозова",
    "NOVIKAVA": "Новикова",
    "PAPLAUSKAYA": "Поплавская",
    "PAULIUKEVICH": "Павлюкевич",
    "RUDENKA": "Руденко",
    "SAKHARAVA": "Сахарова",
    "SHAUCHENKA": "Шевченко",
    "SIARHEICHYK": "Сергейчик",
    "TSIMAFEYENKA": "Тимофеенко",
    "VARABEI": "Воробей",
    "ZALEUSKAYA": "Залевская",
}


def _transliterate_word(word: str) -> str:
    lowered = word.lower()
    out = []
    i = 0
    while i < len(lowered):
        for size in range(_MAX_KEY_LENGTH, 0, -1):
            chunk = lowered[i:i + size]
            if len(chunk) == size and chunk in TRANSLIT_MAP:
                out.append(TRANSLIT_MAP[chunk])
                i += size
                break
        else:
            out.append(lowered[i])
            i += 1
    result = "".join(out)
    return result[:1].upper() + result[1:]


def transliterate_to_cyrillic(latin_name: str) -> str:
    """Transliterate a Latin name word by word, preferring known spellings."""
    if not latin_name:
        return ""
    words = []
    for word in latin_name.split():
        corrected = NAME_CORRECTIONS.get(word.upper())
        words.append(corrected if corrected else _transliterate_word(word))
    return " ".join(words)


def is_latin_name(name: str) -> bool:
    letters = [ch for ch in name if ch.isalpha()]
    return bool(letters) and all("a" <= ch.lower() <= "z" for ch in letters)
