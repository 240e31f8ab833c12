"""Customer-facing chat texts and quick-reply labels."""
from typing import List

from .cart import CartSummary, format_money

# Quick-reply labels. Matched case-insensitively when tapped or typed.
BROWSE_MENU = "Browse Menu"
VIEW_CART = "View Cart"
HELP = "Help"
CONTINUE_SHOPPING = "Continue Shopping"
CHECKOUT = "Checkout"
CLEAR_CART = "Clear Cart"
CONFIRM_PAYMENT = "Confirm Payment"
CANCEL = "Cancel"
CUSTOM_AMOUNT = "Custom Amount"

WELCOME_BUTTONS = [BROWSE_MENU, VIEW_CART, HELP]
QUANTITY_BUTTONS = ["1", "2", "3", CUSTOM_AMOUNT]
AFTER_ADD_BUTTONS = [CONTINUE_SHOPPING, VIEW_CART, CHECKOUT]
CART_BUTTONS = [CHECKOUT, CONTINUE_SHOPPING, CLEAR_CART]
PAYMENT_BUTTONS = [CONFIRM_PAYMENT, CANCEL]

WELCOME_TEXT = """🍽️ Welcome to FoodBot! 🤖

I can help you order delicious food from various restaurants.

What would you like to eat today? You can:
• Type a food name (e.g., "pizza", "burger", "pasta")
• Browse by category
• Check your cart
• Get help

Just tell me what you're craving! 😋"""

PROMPT_TEXT = "What would you like to eat? Type a dish name or browse the menu."

HELP_TEXT = """🤖 *FoodBot Help*

*How to order:*
1. Tell me what food you want
2. Choose from the results
3. Select quantity
4. Continue shopping or checkout
5. Provide delivery address
6. Pay using the link I send you

*Commands:*
• Search food: Just type what you want
• Browse menu: Say "menu"
• View cart: Say "cart"
• Start over: Say "reset"
• Get help: Say "help"

Need assistance? Just ask! 😊"""

RESET_TEXT = "🔄 Starting over. Your cart has been cleared."
SEARCH_PROMPT = "What are you looking for? Type a dish name, e.g. \"jollof rice\"."
CONTINUE_TEXT = "🍴 What else would you like? Type a dish name or browse the menu."
CUSTOM_AMOUNT_TEXT = "Please enter the quantity you want (1-{max_quantity}):"
CART_EMPTY_TEXT = "🛒 Your cart is empty. Start by telling me what you'd like to eat!"
CHECKOUT_EMPTY_TEXT = "🛒 Your cart is empty. Add some items first!"
CART_CLEARED_TEXT = "🛒 Cart cleared! What would you like to order?"
ITEMS_REMOVED_TEXT = "⚠️ Some items in your cart are no longer available and were removed."
NO_CATEGORIES_TEXT = "Sorry, the menu is not available right now. Try searching for a dish instead."
INVALID_SELECTION_TEXT = "Sorry, I couldn't find that option. Please choose from the list or type what you're looking for."
PICK_FROM_LIST_TEXT = "Please pick an item from the list, or type a new search."
CHECKOUT_CANCELLED_TEXT = "Checkout cancelled. Your cart is still saved."
PAYMENT_CANCELLED_TEXT = "Payment cancelled. Your cart is still saved - checkout again whenever you're ready."
NOTHING_ADDED_TEXT = "Okay, nothing was added."
ADDRESS_HELP_TEXT = "Please send your full delivery address (street, area and city) to complete your order."
NO_PENDING_PAYMENT_TEXT = "You don't have a payment waiting for confirmation."


def address_too_short(min_length: int) -> str:
    return f"📍 Please provide a complete delivery address (at least {min_length} characters)."


def no_results(query: str) -> str:
    return f"😕 Sorry, I couldn't find anything matching \"{query}\". Try another dish, or browse the menu."


def search_results_header(query: str, count: int) -> str:
    return f"🔍 Found {count} result(s) for \"{query}\". Pick one to see details:"


def category_header(name: str) -> str:
    return f"📂 *{name}* - pick an item to see details:"


def category_empty(name: str) -> str:
    return f"No items are available in {name} right now."


def food_row_description(food) -> str:
    restaurant = food.restaurant.name if food.restaurant else ""
    return f"{format_money(food.price)} • {restaurant}" if restaurant else format_money(food.price)


def food_details(food) -> str:
    restaurant = food.restaurant
    lines = [
        f"🍽️ *{food.name}*",
        f"📍 {restaurant.name}" if restaurant else None,
        f"💰 {format_money(food.price)}",
        f"📝 {food.description}" if food.description else None,
        f"⏱️ Prep time: {food.preparation_time}" if food.preparation_time else None,
        f"🚚 Delivery: {restaurant.delivery_time}" if restaurant and restaurant.delivery_time else None,
        "",
        "How many would you like to add to your cart?",
    ]
    return "\n".join(line for line in lines if line is not None)


def added_to_cart(quantity: int, name: str) -> str:
    return f"✅ Added {quantity}x {name} to your cart!\n\nWhat would you like to do next?"


def cart_lines(summary: CartSummary) -> List[str]:
    lines = []
    for index, line in enumerate(summary.lines, 1):
        lines.append(f"{index}. {line.name} x{line.quantity} - {format_money(line.subtotal)}")
        if line.restaurant_name:
            lines.append(f"   📍 {line.restaurant_name}")
    return lines


def cart_text(summary: CartSummary) -> str:
    body = "\n".join(cart_lines(summary))
    return f"🛒 *Your Cart:*\n\n{body}\n\n💰 *Total: {format_money(summary.total)}*"


def checkout_prompt(summary: CartSummary) -> str:
    return (
        f"{cart_text(summary)}\n\n"
        "📍 Please send your delivery address to complete your order."
    )


def payment_link(order_number: str, total, pay_url: str, ttl_minutes: int) -> str:
    return (
        f"🧾 Order #{order_number}\n"
        f"💰 Total: {format_money(total)}\n\n"
        f"💳 Pay securely here:\n{pay_url}\n\n"
        f"This link expires in {ttl_minutes} minutes. "
        "After paying, tap \"Confirm Payment\"."
    )


def awaiting_payment_reminder(pay_url: str | None) -> str:
    link = f"\n\n💳 {pay_url}" if pay_url else ""
    return (
        "⏳ Your order is waiting for payment."
        f"{link}\n\n"
        "Once you've paid, tap \"Confirm Payment\" or send \"paid\". "
        "Send \"cancel\" to go back to your cart."
    )


def payment_still_pending() -> str:
    return (
        "⏳ We haven't received confirmation of your payment yet. "
        "If you've just paid, give it a moment and tap \"Confirm Payment\" again."
    )


def payment_failed(order_number: str) -> str:
    return (
        f"❌ Payment for order #{order_number} was not successful. "
        "Tap \"Cancel\" to return to your cart and try again."
    )


def payment_expired(order_number: str) -> str:
    return (
        f"⌛ The payment link for order #{order_number} has expired. "
        "If you already paid, tap \"Confirm Payment\" again. "
        "Otherwise tap \"Cancel\" to return to your cart and checkout again."
    )


def order_confirmed(order, paid: bool) -> str:
    payment = "Paid online ✅" if paid else "Cash on delivery"
    return (
        "✅ *Order Confirmed!*\n\n"
        f"📋 Order #: {order.order_number}\n"
        f"💰 Total: {format_money(order.total_amount)}\n"
        f"📍 Delivery to: {order.delivery_address}\n"
        "⏱️ Estimated delivery: 45-60 minutes\n\n"
        f"Payment: {payment}\n"
        "You'll receive updates on your order status.\n\n"
        "Thank you for your order! 🙏"
    )


def payment_failed_notice(order_number: str) -> str:
    return f"❌ We couldn't complete the payment for order #{order_number}. Please try again."


ORDER_STATUS_TEXTS = {
    "confirmed": "✅ Your order #{number} has been confirmed! We're preparing your food.",
    "preparing": "👨‍🍳 Your order #{number} is being prepared. Estimated time: {delivery_time}",
    "ready": "🍽️ Your order #{number} is ready! Our delivery person is on the way.",
    "out_for_delivery": "🚚 Your order #{number} is out for delivery!",
    "delivered": "✅ Your order #{number} has been delivered! Thank you for choosing us! 🙏",
    "cancelled": "❌ Sorry, your order #{number} has been cancelled. You will be refunded if payment was made.",
}


def order_status_update(order_number: str, status: str, delivery_time: str | None = None) -> str | None:
    template = ORDER_STATUS_TEXTS.get(status)
    if template is None:
        return None
    return template.format(number=order_number, delivery_time=delivery_time or "30-45 mins")
