"""
Keyword table for smart categorization.

Bengali and English trigger words per default category. Order matters:
categories are tried top to bottom and the first hit wins, so a word
listed under two categories (e.g. 'তেল') resolves to the earlier one.
"""

from khata.models.state import TransactionType


KEYWORD_MAP: dict[TransactionType, dict[str, tuple[str, ...]]] = {
    TransactionType.EXPENSE: {
        "খাদ্য": (
            "খাবার", "রেস্টুরেন্ট", "বিরিয়ানি", "লাঞ্চ", "ডিনার", "পিৎজা",
            "বার্গার", "নাস্তা", "food", "restaurant", "lunch", "dinner",
            "pizza", "burger", "nasta", "snacks", "kfc", "cafe", "biryani",
            "tehari", "tea", "coffee", "চা", "কফি", "মিষ্টি",
        ),
        "পরিবহন": (
            "রিকশা", "বাস", "ট্রেন", "সিএনজি", "উবার", "পাঠাও", "ভাড়া", "তেল",
            "অকটেন", "rickshaw", "bus", "train", "cng", "uber", "pathao",
            "bike", "transport", "fare", "fuel", "petrol", "parking", "টোল",
            "toll",
        ),
        "বাজার": (
            "চাল", "ডাল", "তেল", "সবজি", "মাছ", "মাংস", "মুদি", "groceries",
            "bazaar", "market", "super shop", "egg", "chicken", "fish", "meat",
            "potato", "swapno", "shwapno", "agora", "meenabazar", "লবণ",
            "চিনি", "পেয়াজ", "মরিচ",
        ),
        "বিল": (
            "কারেন্ট", "বিদ্যুৎ", "গ্যাস", "ওয়াসা", "পানি", "ইন্টারনেট",
            "ওয়াইফাই", "রিচার্জ", "লোড", "bill", "electricity", "gas", "water",
            "internet", "wifi", "recharge", "load", "utility", "desco", "dpdc",
            "titas", "broadband", "btcl",
        ),
        "ডিপিএস পেমেন্ট": ("dps", "সঞ্চয়", "deposit", "savings", "ডিপিএস"),
        "লোন পেমেন্ট": ("loan", "কিস্তি", "emi", "ঋণ", "brac", "asha", "installment"),
        "বিনোদন": (
            "সিনেমা", "মুভি", "গেম", "আড্ডা", "ভ্রমণ", "ট্যুর", "ঘুরতে", "পার্ক",
            "movie", "cinema", "game", "netflix", "tour", "travel", "park",
            "concert", "পিকনিক", "picnic", "zoo",
        ),
        "শিক্ষা": (
            "বই", "খাতা", "কলম", "টিউশন", "ফিস", "কোর্স", "পড়াশোনা", "স্কুল",
            "কলেজ", "ইউনিভার্সিটি", "book", "pen", "tuition", "fees", "course",
            "education", "school", "college", "udemy", "exam",
        ),
        "স্বাস্থ্য": (
            "ঔষধ", "ডাক্তার", "ফি", "চেকআপ", "মেডিসিন", "হাসপাতাল", "ক্লিনিক",
            "medicine", "doctor", "health", "checkup", "hospital", "clinic",
            "pharma", "surgery", "tablet", "সিরাপ", "napa", "প্যারাসিটামল",
        ),
    },
    TransactionType.INCOME: {
        "বেতন": (
            "বেতন", "স্যালারি", "অফিস", "চাকরি", "salary", "office", "paycheck",
            "work", "job", "remittance", "রেমিট্যান্স",
        ),
        "বোনাস": ("বোনাস", "ইভেন্ট", "উৎসব", "bonus", "extra", "festival", "eid", "ইদ"),
        "উপহার": (
            "উপহার", "গিফট", "হাদিয়া", "সালামি", "বখশিশ", "gift", "present",
            "salami", "tips", "prize", "পারিতোষিক",
        ),
        "বিনিয়োগ": (
            "শেয়ার", "লাভ", "ডিভিডেন্ড", "সুদ", "profit", "investment", "stock",
            "dividend", "interest", "profit share",
        ),
    },
}
