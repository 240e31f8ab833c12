"""
Conversation Engine - step-indexed dialogue for browsing, cart, checkout and payment.

Architecture:
1. First contact      -> one-time welcome, nothing else runs
2. Structured replies -> decoded selection (food_/cat_/button) wins over step dispatch
3. Reset intent       -> global escape hatch from any step
                         (at checkout only when it cannot be an address)
4. Literal button text typed by hand -> same handler as the button
   (awaiting payment only honours Confirm Payment and Cancel)
5. Step handler       -> STEP_HANDLERS[state.step](turn, text, intent)

The engine does no I/O of its own: it mutates a SessionState, reads the
catalog, asks CheckoutService for order/payment side effects and collects
outbound messages. The MessageProcessor commits and sends.

Error recovery:
- UserInputError -> re-prompt, step unchanged
- NotFoundError  -> explain, back to INITIAL
- GatewayError   -> "try again later", step unchanged
"""
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List

from foodbot.core.config import settings
from foodbot.core.exceptions import FoodBotError, GatewayError, NotFoundError, UserInputError
from foodbot.core.timeutils import utcnow
from foodbot.services.payment_service import CheckoutService, ConfirmationStatus
from . import messages as msg
from .cart import add_to_cart, price_cart
from .conversation_state import INTENT_KEYWORDS, Intent, Step
from .intent_classifier import (
    classify_intent,
    is_payment_confirmation,
    normalize_text,
    parse_quantity,
    strip_search_keyword,
)
from .outbound import ButtonMessage, ListMessage, ListRow, ListSection, OutboundMessage, TextMessage
from .selections import (
    CategorySelection,
    FoodSelection,
    InboundMessage,
    InvalidSelection,
    ReplySelection,
    Selection,
    category_row_id,
    food_row_id,
)
from .session_state import SessionState

logger = logging.getLogger(__name__)

MIN_SEARCH_LENGTH = 3


@dataclass
class Turn:
    """One inbound message being handled."""
    state: SessionState
    raw_text: str
    messages: List[OutboundMessage] = field(default_factory=list)

    def say(self, text: str) -> None:
        self.messages.append(TextMessage(text))

    def ask(self, text: str, buttons: List[str]) -> None:
        self.messages.append(ButtonMessage.build(text, buttons))

    def show_list(self, text: str, sections: List[ListSection], button: str = "Choose Option") -> None:
        self.messages.append(ListMessage.build(text, sections, button))


@dataclass
class EngineResult:
    messages: List[OutboundMessage]
    previous_step: Step
    step: Step


class ConversationEngine:
    def __init__(self, catalog, checkout: CheckoutService):
        self.catalog = catalog
        self.checkout = checkout

        self.step_handlers: Dict[Step, Callable] = {
            Step.INITIAL: self._on_initial,
            Step.SEARCHING: self._on_searching,
            Step.VIEWING_OPTIONS: self._on_viewing_options,
            Step.ADDING_TO_CART: self._on_adding_to_cart,
            Step.CART_MANAGEMENT: self._on_cart_management,
            Step.CHECKOUT: self._on_checkout,
            Step.AWAITING_PAYMENT: self._on_awaiting_payment,
        }
        missing = set(Step) - set(self.step_handlers)
        if missing:
            raise RuntimeError(f"No handler for steps: {sorted(s.value for s in missing)}")

        # Normalized button label -> handler; also applies when the label is typed
        self.reply_handlers: Dict[str, Callable[[Turn], None]] = {
            msg.BROWSE_MENU.lower(): self._show_categories,
            msg.VIEW_CART.lower(): self._show_cart,
            msg.HELP.lower(): self._show_help,
            msg.CONTINUE_SHOPPING.lower(): self._continue_shopping,
            msg.CHECKOUT.lower(): self._start_checkout,
            msg.CLEAR_CART.lower(): self._clear_cart,
            msg.CONFIRM_PAYMENT.lower(): self._confirm_payment,
            msg.CANCEL.lower(): self._cancel,
        }
        # Awaiting payment: only these replies act, everything else gets the reminder
        self.payment_replies = {msg.CONFIRM_PAYMENT.lower(), msg.CANCEL.lower()}

    # ==========================================================================
    # ENTRY POINT
    # ==========================================================================

    def handle(self, state: SessionState, inbound: InboundMessage) -> EngineResult:
        previous = state.step
        turn = Turn(state=state, raw_text=(inbound.text or "").strip())

        state.last_activity_at = utcnow()
        if inbound.display_name and not state.display_name:
            state.display_name = inbound.display_name

        try:
            if state.is_first_contact:
                # First message ever: welcome only, even if it looked like a search
                state.is_first_contact = False
                self._welcome(turn)
            elif inbound.selection is not None:
                self._dispatch_selection(turn, inbound.selection)
            else:
                self._dispatch_text(turn)
        except UserInputError as e:
            logger.info(f"[Engine] {state.identifier}: input rejected in {state.step.value}: {e}")
            turn.say(e.user_message)
        except NotFoundError as e:
            logger.info(f"[Engine] {state.identifier}: not found in {state.step.value}: {e}")
            state.move_to(Step.INITIAL)
            turn.ask(e.user_message, msg.WELCOME_BUTTONS)
        except GatewayError as e:
            logger.warning(f"[Engine] {state.identifier}: gateway failure in {state.step.value}: {e}")
            turn.say(e.user_message)
        except FoodBotError as e:
            logger.error(f"[Engine] {state.identifier}: {type(e).__name__}: {e}")
            turn.say(e.user_message)

        if previous != state.step:
            logger.info(f"[Engine] {state.identifier}: {previous.value} -> {state.step.value}")

        return EngineResult(messages=turn.messages, previous_step=previous, step=state.step)

    def _reply_handler(self, turn: Turn, text: str):
        if turn.state.step == Step.AWAITING_PAYMENT and text not in self.payment_replies:
            return None
        return self.reply_handlers.get(text)

    def _dispatch_selection(self, turn: Turn, selection: Selection) -> None:
        if turn.state.step == Step.AWAITING_PAYMENT and not isinstance(selection, ReplySelection):
            # A stale list tap must not drop the payment reference
            self._on_awaiting_payment(turn, "", Intent.UNKNOWN)
            return
        if isinstance(selection, FoodSelection):
            self._show_food(turn, selection.food_id)
        elif isinstance(selection, CategorySelection):
            self._show_category(turn, selection.category_id)
        elif isinstance(selection, InvalidSelection):
            raise UserInputError(f"undecodable selection {selection.raw_id!r}", user_message=msg.INVALID_SELECTION_TEXT)
        elif isinstance(selection, ReplySelection):
            handler = self._reply_handler(turn, selection.text)
            if handler is not None:
                handler(turn)
            else:
                # Step-specific buttons ("1", "custom amount", ...)
                self.step_handlers[turn.state.step](turn, selection.text, Intent.UNKNOWN)

    def _dispatch_text(self, turn: Turn) -> None:
        text = normalize_text(turn.raw_text)
        intent = classify_intent(text)

        if intent == Intent.RESET and self._is_reset_request(turn, text):
            self._reset(turn)
            return

        handler = self._reply_handler(turn, text)
        if handler is not None:
            handler(turn)
            return

        self.step_handlers[turn.state.step](turn, text, intent)

    def _is_reset_request(self, turn: Turn, text: str) -> bool:
        """At checkout "12 Restart Road, Ikeja" is an address, not a reset."""
        if turn.state.step != Step.CHECKOUT:
            return True
        return text in INTENT_KEYWORDS[Intent.RESET] or len(text) < settings.MIN_ADDRESS_LENGTH

    # ==========================================================================
    # STEP HANDLERS
    # ==========================================================================

    def _common(self, turn: Turn, intent: Intent) -> bool:
        """Menu / cart / help work the same from browsing steps."""
        if intent == Intent.MENU:
            self._show_categories(turn)
        elif intent == Intent.CART:
            self._show_cart(turn)
        elif intent == Intent.HELP:
            self._show_help(turn)
        elif intent == Intent.CHECKOUT:
            self._start_checkout(turn)
        elif intent == Intent.CANCEL:
            self._cancel(turn)
        else:
            return False
        return True

    def _on_initial(self, turn: Turn, text: str, intent: Intent) -> None:
        if self._common(turn, intent):
            return
        if intent == Intent.SEARCH:
            query = strip_search_keyword(text)
            if len(query) >= MIN_SEARCH_LENGTH:
                self._search(turn, query)
            else:
                turn.state.move_to(Step.SEARCHING)
                turn.say(msg.SEARCH_PROMPT)
            return
        if intent in (Intent.FOOD_SEARCH, Intent.ADDRESS, Intent.UNKNOWN) and len(text) >= MIN_SEARCH_LENGTH:
            self._search(turn, text)
            return
        self._welcome(turn)

    def _on_searching(self, turn: Turn, text: str, intent: Intent) -> None:
        if self._common(turn, intent):
            return
        query = strip_search_keyword(text) if intent == Intent.SEARCH else text
        self._search(turn, query)

    def _on_viewing_options(self, turn: Turn, text: str, intent: Intent) -> None:
        if self._common(turn, intent):
            return
        if intent == Intent.SEARCH:
            text = strip_search_keyword(text)
        if intent in (Intent.SEARCH, Intent.FOOD_SEARCH, Intent.ADDRESS) and len(text) >= MIN_SEARCH_LENGTH:
            self._search(turn, text)
            return
        turn.ask(msg.PICK_FROM_LIST_TEXT, [msg.BROWSE_MENU, msg.VIEW_CART])

    def _on_adding_to_cart(self, turn: Turn, text: str, intent: Intent) -> None:
        state = turn.state
        if intent in (Intent.CANCEL, Intent.NO):
            state.move_to(Step.CART_MANAGEMENT if state.cart else Step.INITIAL)
            turn.ask(msg.NOTHING_ADDED_TEXT, msg.CART_BUTTONS if state.cart else msg.WELCOME_BUTTONS)
            return
        if intent in (Intent.CART, Intent.MENU, Intent.HELP):
            self._common(turn, intent)
            return

        max_quantity = settings.MAX_QUANTITY_PER_ADD
        if text == msg.CUSTOM_AMOUNT.lower():
            turn.say(msg.CUSTOM_AMOUNT_TEXT.format(max_quantity=max_quantity))
            return

        food_id = state.selected_food_id
        if food_id is None:
            raise NotFoundError("adding_to_cart without a selected food")

        quantity = parse_quantity(text)
        if quantity is None:
            raise UserInputError(
                f"not a quantity: {text!r}",
                user_message=f"Please enter a valid quantity (1-{max_quantity}).",
            )

        food = self.catalog.get_food(food_id)
        if food is None:
            raise NotFoundError(f"food {food_id} disappeared before add")

        add_to_cart(state, food_id, quantity)
        state.move_to(Step.CART_MANAGEMENT)
        turn.ask(msg.added_to_cart(quantity, food.name), msg.AFTER_ADD_BUTTONS)

    def _on_cart_management(self, turn: Turn, text: str, intent: Intent) -> None:
        if self._common(turn, intent):
            return
        if intent == Intent.SEARCH:
            text = strip_search_keyword(text)
        if len(text) >= MIN_SEARCH_LENGTH or intent == Intent.FOOD_SEARCH:
            self._search(turn, text)
            return
        turn.ask("What would you like to do next?", msg.CART_BUTTONS)

    def _on_checkout(self, turn: Turn, text: str, intent: Intent) -> None:
        state = turn.state
        address = " ".join(turn.raw_text.split())
        # "no 5, opposite bus stop" is an address, not a cancel
        is_short = len(address) < settings.MIN_ADDRESS_LENGTH
        if is_short and intent in (Intent.CANCEL, Intent.NO):
            state.move_to(Step.CART_MANAGEMENT)
            turn.ask(msg.CHECKOUT_CANCELLED_TEXT, msg.CART_BUTTONS)
            return
        if is_short and intent == Intent.CART:
            self._show_cart(turn)
            return
        if is_short and intent == Intent.HELP:
            turn.say(msg.ADDRESS_HELP_TEXT)
            return

        if is_short:
            raise UserInputError(
                f"address too short ({len(address)} chars)",
                user_message=msg.address_too_short(settings.MIN_ADDRESS_LENGTH),
            )
        self._complete_checkout(turn, address)

    def _on_awaiting_payment(self, turn: Turn, text: str, intent: Intent) -> None:
        if is_payment_confirmation(text):
            self._confirm_payment(turn)
            return
        if intent in (Intent.CANCEL, Intent.NO):
            self._cancel(turn)
            return
        if intent == Intent.HELP:
            self._show_help(turn)
            return
        pending = self.checkout.get_pending(turn.state.pending_payment_reference or "")
        turn.ask(msg.awaiting_payment_reminder(pending.payment_url if pending else None), msg.PAYMENT_BUTTONS)

    # ==========================================================================
    # ACTIONS
    # ==========================================================================

    def _welcome(self, turn: Turn) -> None:
        turn.ask(msg.WELCOME_TEXT, msg.WELCOME_BUTTONS)

    def _show_help(self, turn: Turn) -> None:
        turn.say(msg.HELP_TEXT)

    def _reset(self, turn: Turn) -> None:
        turn.state.reset()
        turn.say(msg.RESET_TEXT)
        turn.ask(msg.PROMPT_TEXT, msg.WELCOME_BUTTONS)

    def _cancel(self, turn: Turn) -> None:
        state = turn.state
        if state.step == Step.AWAITING_PAYMENT:
            # The PendingPayment is left as is: a late webhook may still promote it
            logger.info(f"[Engine] {state.identifier}: abandoned payment {state.pending_payment_reference}")
            state.move_to(Step.CART_MANAGEMENT)
            turn.ask(msg.PAYMENT_CANCELLED_TEXT, msg.CART_BUTTONS)
        elif state.step == Step.CHECKOUT:
            state.move_to(Step.CART_MANAGEMENT)
            turn.ask(msg.CHECKOUT_CANCELLED_TEXT, msg.CART_BUTTONS)
        elif state.step == Step.ADDING_TO_CART and state.cart:
            state.move_to(Step.CART_MANAGEMENT)
            turn.ask(msg.NOTHING_ADDED_TEXT, msg.CART_BUTTONS)
        else:
            state.move_to(Step.INITIAL)
            turn.ask(msg.PROMPT_TEXT, msg.WELCOME_BUTTONS)

    def _continue_shopping(self, turn: Turn) -> None:
        turn.state.move_to(Step.INITIAL)
        turn.ask(msg.CONTINUE_TEXT, [msg.BROWSE_MENU, msg.VIEW_CART])

    def _search(self, turn: Turn, query: str) -> None:
        state = turn.state
        state.move_to(Step.SEARCHING)
        state.search_query = query[:255]
        foods = self.catalog.search_foods(query)

        if not foods:
            state.search_result_ids = []
            state.move_to(Step.INITIAL)
            turn.ask(msg.no_results(query), [msg.BROWSE_MENU, msg.HELP])
            return

        state.search_result_ids = [food.id for food in foods]
        state.move_to(Step.VIEWING_OPTIONS)
        turn.show_list(
            msg.search_results_header(query, len(foods)),
            [ListSection(title="Search Results", rows=self._food_rows(foods))],
            button="View Options",
        )

    def _food_rows(self, foods) -> List[ListRow]:
        return [
            ListRow(id=food_row_id(food.id), title=food.name, description=msg.food_row_description(food))
            for food in foods
        ]

    def _show_categories(self, turn: Turn) -> None:
        categories = self.catalog.active_categories()
        if not categories:
            turn.state.move_to(Step.INITIAL)
            turn.say(msg.NO_CATEGORIES_TEXT)
            return
        rows = [
            ListRow(id=category_row_id(category.id), title=category.name, description=category.description or "")
            for category in categories
        ]
        turn.state.move_to(Step.VIEWING_OPTIONS)
        turn.show_list("📋 *Menu Categories*\n\nChoose a category to browse:", [ListSection(title="Categories", rows=rows)], button="Browse")

    def _show_category(self, turn: Turn, category_id: int) -> None:
        category = self.catalog.get_category(category_id)
        if category is None:
            raise NotFoundError(
                f"category {category_id} missing",
                user_message="Sorry, that category is no longer available.",
            )
        foods = self.catalog.foods_in_category(category_id)
        state = turn.state
        state.move_to(Step.VIEWING_OPTIONS)
        if not foods:
            state.search_result_ids = []
            turn.ask(msg.category_empty(category.name), [msg.BROWSE_MENU, msg.VIEW_CART])
            return
        state.search_result_ids = [food.id for food in foods]
        turn.show_list(
            msg.category_header(category.name),
            [ListSection(title=category.name, rows=self._food_rows(foods))],
            button="View Items",
        )

    def _show_food(self, turn: Turn, food_id: int) -> None:
        food = self.catalog.get_food(food_id)
        if food is None:
            raise NotFoundError(f"food {food_id} missing or unavailable")
        turn.state.select_food(food.id)
        turn.ask(msg.food_details(food), msg.QUANTITY_BUTTONS)

    def _show_cart(self, turn: Turn) -> None:
        state = turn.state
        summary = price_cart(self.catalog, state)
        if summary.missing_food_ids:
            turn.say(msg.ITEMS_REMOVED_TEXT)
        if summary.is_empty:
            state.move_to(Step.INITIAL)
            turn.ask(msg.CART_EMPTY_TEXT, [msg.BROWSE_MENU, msg.HELP])
            return
        state.move_to(Step.CART_MANAGEMENT)
        turn.ask(msg.cart_text(summary), msg.CART_BUTTONS)

    def _clear_cart(self, turn: Turn) -> None:
        turn.state.clear_cart()
        turn.state.move_to(Step.INITIAL)
        turn.ask(msg.CART_CLEARED_TEXT, [msg.BROWSE_MENU, msg.HELP])

    def _start_checkout(self, turn: Turn) -> None:
        state = turn.state
        summary = price_cart(self.catalog, state)
        if summary.missing_food_ids:
            turn.say(msg.ITEMS_REMOVED_TEXT)
        if summary.is_empty:
            # Guard: no step change, nothing persisted
            turn.ask(msg.CHECKOUT_EMPTY_TEXT, [msg.BROWSE_MENU])
            return
        state.move_to(Step.CHECKOUT)
        turn.say(msg.checkout_prompt(summary))

    def _complete_checkout(self, turn: Turn, address: str) -> None:
        state = turn.state
        summary = price_cart(self.catalog, state)
        if summary.missing_food_ids:
            turn.say(msg.ITEMS_REMOVED_TEXT)
        if summary.is_empty:
            state.move_to(Step.INITIAL)
            turn.ask(msg.CHECKOUT_EMPTY_TEXT, [msg.BROWSE_MENU])
            return

        if not self.checkout.uses_gateway:
            order = self.checkout.place_cash_order(state, summary, address)
            state.clear_cart()
            state.move_to(Step.INITIAL)
            turn.say(msg.order_confirmed(order, paid=False))
            return

        pending = self.checkout.open_pending_payment(state, summary, address)
        state.await_payment(pending.reference)
        turn.ask(
            msg.payment_link(pending.order_number, pending.total_amount, pending.payment_url, settings.PENDING_PAYMENT_TTL_MINUTES),
            msg.PAYMENT_BUTTONS,
        )

    def _confirm_payment(self, turn: Turn) -> None:
        state = turn.state
        reference = state.pending_payment_reference
        if state.step != Step.AWAITING_PAYMENT or not reference:
            raise UserInputError("confirm without pending payment", user_message=msg.NO_PENDING_PAYMENT_TEXT)

        outcome = self.checkout.confirm_payment(reference)

        if outcome.status == ConfirmationStatus.PAID:
            state.clear_cart()
            state.move_to(Step.INITIAL)
            if outcome.order is not None:
                turn.say(msg.order_confirmed(outcome.order, paid=True))
            return
        if outcome.status == ConfirmationStatus.EXPIRED:
            # Still claimable: a late charge is promoted, so the step stays put
            turn.ask(msg.payment_expired(outcome.pending.order_number), msg.PAYMENT_BUTTONS)
            return
        if outcome.status == ConfirmationStatus.FAILED:
            turn.ask(msg.payment_failed(outcome.pending.order_number), msg.PAYMENT_BUTTONS)
            return
        turn.ask(msg.payment_still_pending(), msg.PAYMENT_BUTTONS)


def build_engine(db, gateway=None, catalog=None, created_payments: dict | None = None) -> ConversationEngine:
    from foodbot.services.catalog import CatalogReader

    return ConversationEngine(catalog or CatalogReader(db), CheckoutService(db, gateway, created_payments))
