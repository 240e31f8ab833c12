"""
Conversation vocabulary: steps, intents and keyword sets.

Steps are a closed enum; the engine's transition table is keyed on them and
refuses to start if a step has no handler. Keyword sets are checked in the
order of INTENT_PRIORITY, never in dict iteration order, so overlapping
words always resolve the same way.
"""
from enum import Enum


class Step(str, Enum):
    """Conversation steps. There is no terminal step; completed flows return to INITIAL."""
    INITIAL = "initial"
    SEARCHING = "searching"
    VIEWING_OPTIONS = "viewing_options"
    ADDING_TO_CART = "adding_to_cart"
    CART_MANAGEMENT = "cart_management"
    CHECKOUT = "checkout"
    AWAITING_PAYMENT = "awaiting_payment"

    @classmethod
    def parse(cls, value: str | None) -> "Step":
        """Unknown or missing values fall back to INITIAL."""
        try:
            return cls(value)
        except ValueError:
            return cls.INITIAL


class Intent(str, Enum):
    GREETING = "greeting"
    MENU = "menu"
    CART = "cart"
    HELP = "help"
    CHECKOUT = "checkout"
    SEARCH = "search"
    CANCEL = "cancel"
    RESET = "reset"
    YES = "yes"
    NO = "no"
    # Heuristic fallbacks
    FOOD_SEARCH = "food_search"
    QUANTITY = "quantity"
    ADDRESS = "address"
    UNKNOWN = "unknown"


# Matched as whole words/phrases against normalized text.
# Sets are disjoint: "cancel" lives only in CANCEL, never in NO.
INTENT_KEYWORDS = {
    Intent.RESET: ["reset", "start over", "restart", "begin again"],
    Intent.CANCEL: ["cancel", "abort", "stop", "never mind", "nevermind"],
    Intent.CHECKOUT: ["checkout", "check out", "place order", "pay now", "proceed to payment"],
    Intent.CART: ["cart", "view cart", "my cart", "basket", "my order"],
    Intent.MENU: ["menu", "browse", "browse menu", "categories", "category"],
    Intent.HELP: ["help", "how does this work", "how to order", "support"],
    Intent.GREETING: ["hi", "hello", "hey", "good morning", "good afternoon", "good evening", "howdy"],
    Intent.YES: ["yes", "yeah", "yep", "sure", "okay", "ok"],
    Intent.NO: ["no", "nope", "nah"],
    Intent.SEARCH: ["search", "find", "looking for", "i want", "show me"],
}

# First match wins. Escape hatches come first so they work from any step.
INTENT_PRIORITY = [
    Intent.RESET,
    Intent.CANCEL,
    Intent.CHECKOUT,
    Intent.CART,
    Intent.MENU,
    Intent.HELP,
    Intent.GREETING,
    Intent.YES,
    Intent.NO,
    Intent.SEARCH,
]

# Anything containing one of these is treated as a food search
FOOD_TERMS = {
    "rice", "jollof", "fried rice", "pizza", "burger", "chicken", "beef", "fish",
    "suya", "shawarma", "pasta", "spaghetti", "noodles", "salad", "soup", "stew",
    "egusi", "amala", "eba", "pounded yam", "yam", "plantain", "dodo", "beans",
    "moi moi", "meat pie", "sandwich", "wrap", "fries", "chips", "wings",
    "drink", "juice", "smoothie", "cake", "dessert", "ice cream", "breakfast",
    "lunch", "dinner", "snack", "pepper soup", "asun", "goat", "turkey",
}

# Too generic to search for
STOPWORDS = {
    "the", "and", "for", "you", "are", "can", "what", "how", "why", "who",
    "this", "that", "with", "please", "thanks", "thank you", "hmm", "lol",
    "okay", "yes", "nope", "not", "but", "any", "was", "its", "it's",
}

# Awaiting-payment phrases that ask us to check the gateway
PAYMENT_CONFIRMATION_PHRASES = ["confirm payment", "paid", "i have paid", "i've paid", "payment done", "payment made"]
