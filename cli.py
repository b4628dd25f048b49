# cli.py
import sys
from datetime import datetime
from typing import Any, Dict, List, Optional

import requests
from prompt_toolkit import prompt
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.styles import Style as PromptStyle
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.prompt import Confirm, IntPrompt, Prompt
from rich.table import Table
from rich.text import Text

from sdk.client import StoreClient
from storefront import config
from storefront.log import configure_logging
from storefront.shell import (
    THEMES, AppState, LoadStatus, load_app_state, refresh_order, set_global_theme, show_continue_pay,
)

console = Console()
c = StoreClient(base_url=config.BASE_URL, api_key=config.API_TOKEN or None)

status_message = "Ready"
product_cache: List[Dict[str, Any]] = []
state = AppState()

custom_style = PromptStyle.from_dict({
    'completion-menu.completion': 'bg:#008888 #ffffff',
    'completion-menu.completion.current': 'bg:#00aaaa #000000',
    'scrollbar.background': 'bg:#88aaaa',
    'scrollbar.button': 'bg:#222222',
})


def _error_detail(e: Exception) -> str:
    """Pull the API's `detail` out of an HTTPError when there is one."""
    response = getattr(e, "response", None)
    if response is not None:
        try:
            detail = response.json().get("detail")
        except ValueError:
            detail = None
        if detail:
            return f"HTTP {response.status_code}: {detail}"
    return str(e)


# ---------------------------
# Display helpers
# ---------------------------
def show_products(products: List[Dict[str, Any]]):
    if not products:
        console.print("[italic yellow]No products found[/italic yellow]")
        return

    table = Table(
        title="📦 Products Catalog",
        box=box.ROUNDED,
        header_style="bold cyan",
        title_style="bold magenta",
        show_lines=True
    )
    table.add_column("ID", style="dim", width=6)
    table.add_column("Title", style="bold", width=24)
    table.add_column("Price", justify="right", width=10)
    table.add_column("Discount", justify="right", width=9)
    table.add_column("Category", width=16)
    table.add_column("Image", width=18)

    for p in products:
        category = p.get("category") or {}
        table.add_row(
            str(p.get("id", "N/A")),
            p.get("title", "N/A"),
            f"${p.get('price', 0):.2f}",
            f"{p.get('discount', 0):g}%" if p.get("discount") else "-",
            category.get("slug", str(p.get("categoryId", "N/A"))),
            p.get("img") or "-",
        )
    console.print(table)


def show_cart(app_state: AppState):
    order = app_state.order
    title = Text()
    title.append("🛒 Shopping Cart", style="bold")
    title.append(f" - Total: ${order.total:.2f}", style="bold green")

    if not app_state.cart:
        console.print(Panel("Your cart is empty 🛍️", title=title, style="blue"))
        return

    table = Table(box=box.ROUNDED, header_style="bold blue", show_lines=True)
    table.add_column("Product", style="bold", width=30)
    table.add_column("Qty", justify="right", width=8)
    table.add_column("Price", justify="right", width=12)
    table.add_column("Subtotal", justify="right", width=12)

    for it in app_state.cart:
        product = it["product"]
        table.add_row(
            product.get("title", "Unknown"),
            str(it["quantity"]),
            f"${product['price']:.2f}",
            f"${product['price'] * it['quantity']:.2f}",
        )
    console.print(Panel(table, title=title, border_style="blue"))
    console.print(
        f"Subtotal ${order.subtotal:.2f}  Discount -${order.discount:.2f}  "
        f"Tax ${order.tax:.2f}  [bold]Total ${order.total:.2f}[/bold]"
    )
    if order.missing_requirements:
        console.print(f"[yellow]Still needed for checkout: {', '.join(order.missing_requirements.values())}[/yellow]")


def show_orders(orders: List[Dict[str, Any]]):
    if not orders:
        console.print("[italic yellow]No orders found[/italic yellow]")
        return

    table = Table(
        title="📋 Order History",
        box=box.ROUNDED,
        header_style="bold yellow",
        title_style="bold yellow",
        show_lines=True
    )
    table.add_column("Order ID", style="dim", width=14)
    table.add_column("Contents", width=40)
    table.add_column("Status", width=10)
    table.add_column("Total", justify="right", width=12)

    for order in orders:
        items = order.get("items", [])
        names = [f"{it['title']} x{it['quantity']}" for it in items[:3]]
        contents = ", ".join(names) if names else "No items"
        if len(items) > 3:
            contents += f" +{len(items) - 3} more"
        table.add_row(
            order["id"][:12] + "...",
            contents,
            f"[green]{order.get('status', 'N/A')}[/green]",
            f"${order.get('total', 0):.2f}",
        )
    console.print(table)


def show_profile(view: Dict[str, Any]):
    if "redirect" in view:
        console.print(Panel.fit(f"Redirected to [bold]{view['redirect']}[/bold]", title="Profile"))
        return
    lines = [f"[bold]{view['heading']}[/bold]  [cyan]{view['role']}[/cyan]"]
    if view.get("subheading"):
        lines.append(f"[dim]{view['subheading']}[/dim]")
    lines.append(f"[dim]{view['email']}[/dim]")
    if view.get("adminDashboardUrl"):
        lines.append(f"[green]Admin dashboard: {view['adminDashboardUrl']}[/green]")
    info = view.get("topupInformation") or {}
    if info:
        lines.append("")
        lines.extend(f"{k}: {v}" for k, v in info.items())
    console.print(Panel("\n".join(lines), title=view["title"], border_style="magenta"))


def show_status(message: str, is_success: bool = True):
    style = "green" if is_success else "red"
    return Panel.fit(f"[{style}]{message}[/{style}]", title="Status")


# ---------------------------
# API wrapper
# ---------------------------
def try_api(fn, *args, success_msg: Optional[str] = None, **kwargs):
    """Call fn with a spinner. Returns its result, or None after printing the error."""
    global status_message
    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            transient=True,
        ) as progress:
            progress.add_task(description="Processing...", total=None)
            result = fn(*args, **kwargs)

        if success_msg:
            status_message = success_msg
            console.print(show_status(success_msg, True))
        return result
    except requests.RequestException as e:
        status_message = f"Error: {_error_detail(e)}"
        console.print(show_status(status_message, False))
        return None


def reload_state():
    global state
    state = load_app_state(c, AppState(global_theme=state.global_theme))
    for name, load in (("cart", state.cart_load), ("requirements", state.requirements_load)):
        if load.status is LoadStatus.FAILED:
            console.print(f"[red]Could not load {name}: {load.error}[/red]")


# ---------------------------
# Autocompletion helpers
# ---------------------------
def get_product_completer():
    global product_cache
    if not product_cache:
        product_cache = (try_api(c.list_products) or {}).get("products", [])
    ids = [str(p["id"]) for p in product_cache]
    titles = [p["title"] for p in product_cache]
    return WordCompleter(ids + titles, ignore_case=True)


def resolve_product_id(raw: str) -> Optional[int]:
    raw = raw.strip()
    if raw.isdigit():
        return int(raw)
    for p in product_cache:
        if p["title"].lower() == raw.lower():
            return p["id"]
    console.print(f"[red]Unknown product: {raw}[/red]")
    return None


def create_header():
    header = Table(show_header=False, box=box.ROUNDED)
    header.add_column("left", width=30)
    header.add_column("center", width=40)
    header.add_column("right", width=30)

    now = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    header.add_row(
        "🛍️ Storefront",
        "[bold blue]Store CLI with Autocomplete[/bold blue]",
        f"[dim]{now}[/dim]"
    )
    return Panel(header, style="bold blue")


def prompt_with_autocomplete(message: str, completer=None, default: str = ""):
    return prompt(f"{message} ", completer=completer, style=custom_style, default=default)


def ask_float(message: str, default: Optional[float] = None) -> Optional[float]:
    while True:
        raw = Prompt.ask(message, default="" if default is None else str(default))
        if not raw.strip():
            return None
        try:
            return float(raw)
        except ValueError:
            console.print("[red]Please enter a valid number.[/red]")


# ---------------------------
# Main menu
# ---------------------------
def menu():
    global status_message, product_cache, state

    console.clear()
    console.print(create_header())
    reload_state()
    product_cache = (try_api(c.list_products) or {}).get("products", [])

    while True:
        if status_message:
            console.print(show_status(status_message, "Error" not in status_message))
        if show_continue_pay(state, "/"):
            console.print(Panel.fit(
                f"[bold green]Continue to pay → ${state.order.total:.2f}[/bold green] (option 7)",
                border_style="green",
            ))

        menu_table = Table.grid(padding=(0, 2))
        menu_table.add_column("Key", style="bold cyan", width=4)
        menu_table.add_column("Option", width=30)
        menu_table.add_column("Key", style="bold cyan", width=4)
        menu_table.add_column("Option", width=30)

        options = [
            ("1", "📦 List products", "8", "📋 Order history"),
            ("2", "🔍 Search / filter", "9", "👤 Profile"),
            ("3", "➕ Create product", "10", "🎭 Toggle fake admin"),
            ("4", "🛒 View cart", "11", "✏️ Display name"),
            ("5", "🛒 Add to cart", "12", "🎮 Topup information"),
            ("6", "➖ Remove from cart", "13", "🎨 Theme"),
            ("7", "✅ Checkout", "q", "👋 Quit"),
        ]
        for row in options:
            menu_table.add_row(*row)
        console.print(Panel(menu_table, title=f"📋 Menu ({state.global_theme} theme)", border_style="yellow"))

        choice = prompt_with_autocomplete(
            "\nChoose an option",
            completer=WordCompleter([str(i) for i in range(1, 14)] + ["q", "quit", "exit"])
        ).strip()

        if choice == "1":
            resp = try_api(c.list_products, include=["category"], success_msg="Products loaded")
            if resp is not None:
                product_cache = resp["products"]
                show_products(product_cache)

        elif choice == "2":
            term = prompt_with_autocomplete("Search title (blank for any)")
            category = prompt_with_autocomplete("Category slug (blank for any)")
            lo = ask_float("Min price")
            hi = ask_float("Max price")
            discount_only = Confirm.ask("Only discounted?", default=False)
            resp = try_api(
                c.list_products, category or None, lo, hi, discount_only, term or None, ["category"],
                success_msg="Search completed",
            )
            if resp is not None:
                show_products(resp["products"])

        elif choice == "3":
            title = prompt_with_autocomplete("Product title")
            price = ask_float("💰 Price", default=10.0)
            category = prompt_with_autocomplete("🏷️ Category slug")
            sub_category = prompt_with_autocomplete("Sub-category slug (optional)")
            resp = try_api(
                c.create_product, title, price, category, sub_category or None,
                success_msg=f"Product '{title}' created",
            )
            if resp:
                show_products([resp["product"]])
                product_cache = []

        elif choice == "4":
            reload_state()
            show_cart(state)

        elif choice == "5":
            raw = prompt_with_autocomplete("Product ID or title", completer=get_product_completer())
            pid = resolve_product_id(raw)
            if pid is not None:
                qty = IntPrompt.ask("Quantity", default=1)
                if try_api(c.add_to_cart, pid, qty, success_msg=f"Added {qty} x product {pid}") is not None:
                    reload_state()
                    show_cart(state)

        elif choice == "6":
            raw = prompt_with_autocomplete("Product ID or title", completer=get_product_completer())
            pid = resolve_product_id(raw)
            if pid is not None and try_api(c.remove_from_cart, pid, success_msg=f"Removed product {pid}") is not None:
                reload_state()
                show_cart(state)

        elif choice == "7":
            refresh_order(state)
            values: Dict[str, str] = {}
            for name, label in state.order.missing_requirements.items():
                values[name] = Prompt.ask(label)
            resp = try_api(c.checkout, values, success_msg="Order placed")
            if resp:
                order = resp["order"]
                console.print(Panel.fit(
                    f"[green]Order placed successfully![/green]\n"
                    f"Order ID: [bold]{order['id']}[/bold]\n"
                    f"Total: [bold]${order['total']:.2f}[/bold]",
                    title="✅ Order Confirmation"
                ))
                reload_state()

        elif choice == "8":
            resp = try_api(c.list_orders, success_msg="Orders loaded")
            if resp is not None:
                show_orders(resp["orders"])

        elif choice == "9":
            view = try_api(c.profile)
            if view:
                show_profile(view)

        elif choice == "10":
            view = try_api(c.profile) or {}
            role = view.get("role")
            if role == "ADMIN":
                console.print("[yellow]Admins don't have a fake admin toggle[/yellow]")
            elif role and Confirm.ask(
                "Be a fake admin? You can see the admin dashboard but can't do admin operations"
                if role == "USER" else "Go back to being a normal user?"
            ):
                resp = try_api(c.toggle_fake_admin, success_msg="Role updated")
                if resp:
                    show_profile(try_api(c.profile) or {"redirect": "/signin"})

        elif choice == "11":
            name = prompt_with_autocomplete("Display name (blank to clear)")
            if try_api(c.set_display_name, name, success_msg="Saved") is not None:
                show_profile(try_api(c.profile) or {"redirect": "/signin"})

        elif choice == "12":
            defs = state.requirement_definitions
            if not defs:
                console.print("[italic yellow]No topup information needed[/italic yellow]")
            else:
                values = {}
                for r in defs:
                    current = state.order.requirements.get(r["name"], "")
                    values[r["name"]] = Prompt.ask(r["label"], default=current)
                if try_api(c.save_requirements, values, success_msg="Topup information saved"):
                    reload_state()

        elif choice == "13":
            theme = Prompt.ask("Theme", choices=list(THEMES), default=state.global_theme)
            set_global_theme(state, theme)

        elif choice.lower() in ("q", "quit", "exit"):
            if Confirm.ask("Are you sure you want to quit?"):
                console.print(Panel.fit("[bold green]Thanks for shopping! 👋[/bold green]", title="Goodbye"))
                sys.exit(0)

        console.print()
        console.rule(style="dim")


if __name__ == "__main__":
    configure_logging()
    try:
        menu()
    except KeyboardInterrupt:
        console.print("\n\n[bold red]Interrupted by user[/bold red]")
        sys.exit(1)
