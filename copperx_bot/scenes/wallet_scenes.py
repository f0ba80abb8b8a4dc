from telegram import InlineKeyboardButton, InlineKeyboardMarkup

from copperx_bot.handlers.events import Event
from copperx_bot.scenes.base import SceneFlow, WizardScene
from copperx_bot.scenes.common import fail_and_leave, require_token
from copperx_bot.utils.chains import format_network_name
from copperx_bot.utils.formatters import format_wallet, format_wallet_address
from copperx_bot.utils.keyboards import back_to_menu_keyboard, confirm_keyboard, rows


class CreateWalletScene(WizardScene):
    scene_id = "create_wallet"
    steps = ("select_network", "confirm")
    cancel_message = "🚫 *Wallet Creation Cancelled*\n\nNo wallet was created."

    def setup(self):
        self.on_step("select_network", self.select_network,
                     prompt=self.prompt_network, actions=["network"], accepts_text=False)
        self.on_step("confirm", self.confirm,
                     prompt=self.prompt_confirm, actions=["confirm_create_wallet"], accepts_text=False)

    def initial_data(self, network=None, **initial):
        return {"network": network}

    async def enter(self, flow: SceneFlow):
        if flow.data["network"]:
            flow.advance()
            return
        await self.prompt(flow)

    async def prompt_network(self, flow: SceneFlow):
        token = await require_token(flow)
        if token is None:
            return
        networks = await flow.services.wallets.get_supported_networks(token)
        if not networks:
            await fail_and_leave(flow, "No Networks Available",
                                 "We couldn't load the supported networks. Please try again later.")
            return

        buttons = [
            InlineKeyboardButton(format_network_name(network), callback_data=f"network:{network}")
            for network in networks
        ]
        await flow.reply(
            "👛 *Create Wallet*\n\nSelect the network for your new wallet:",
            reply_markup=InlineKeyboardMarkup(rows(buttons) + [[InlineKeyboardButton("❌ Cancel", callback_data="cancel")]]),
        )

    async def prompt_confirm(self, flow: SceneFlow):
        await flow.reply(
            f"Create a new wallet on *{format_network_name(flow.data['network'])}*?",
            reply_markup=confirm_keyboard("confirm_create_wallet", "✅ Create Wallet"),
        )

    async def select_network(self, flow: SceneFlow, event: Event):
        network = (event.action.params or [None])[0]
        if not network:
            return
        flow.data["network"] = network
        flow.advance()

    async def confirm(self, flow: SceneFlow, event: Event):
        token = await require_token(flow)
        if token is None:
            return
        wallet = await flow.services.wallets.create_wallet(token, flow.data["network"])
        if wallet is None:
            await fail_and_leave(flow, "Wallet Creation Failed",
                                 "We couldn't create your wallet. Please try again later.")
            return
        await flow.reply(f"✅ *Wallet Created*\n\n{format_wallet(wallet)}",
                         reply_markup=back_to_menu_keyboard())
        flow.leave()


class SetDefaultWalletScene(WizardScene):
    scene_id = "set_default_wallet"
    steps = ("select_wallet", "confirm")
    cancel_message = "🚫 *Cancelled*\n\nYour default wallet was not changed."

    def setup(self):
        self.on_step("select_wallet", self.select_wallet,
                     prompt=self.prompt_wallet, actions=["select_default"], accepts_text=False)
        self.on_step("confirm", self.confirm,
                     prompt=self.prompt_confirm, actions=["confirm_default_wallet"], accepts_text=False)

    def initial_data(self, wallet_id=None, **initial):
        return {"wallet_id": wallet_id, "wallet_label": None}

    async def enter(self, flow: SceneFlow):
        wallet_id = flow.data["wallet_id"]
        if wallet_id:
            token = await require_token(flow)
            if token is None:
                return
            wallets = await flow.services.wallets.get_wallets(token)
            wallet = next((w for w in wallets or [] if str(w.get("id")) == wallet_id), None)
            if wallet is not None:
                flow.data["wallet_label"] = format_network_name(wallet.get("network"))
                flow.advance()
                return
            flow.data["wallet_id"] = None
        await self.prompt(flow)

    async def prompt_wallet(self, flow: SceneFlow):
        token = await require_token(flow)
        if token is None:
            return
        wallets = await flow.services.wallets.get_wallets(token)
        if not wallets:
            await fail_and_leave(flow, "No Wallets Found", "Create a wallet first with /wallet.")
            return

        keyboard = [
            [InlineKeyboardButton(
                f"{format_network_name(w.get('network'))} {format_wallet_address(w.get('walletAddress') or '')}"
                + (" ✓" if w.get("isDefault") else ""),
                callback_data=f"select_default:{w['id']}",
            )]
            for w in wallets
        ]
        keyboard.append([InlineKeyboardButton("❌ Cancel", callback_data="cancel")])
        flow.data["wallets"] = {
            str(w["id"]): format_network_name(w.get("network")) for w in wallets
        }
        await flow.reply("⭐ *Set Default Wallet*\n\nChoose the wallet to use by default:",
                         reply_markup=InlineKeyboardMarkup(keyboard))

    async def prompt_confirm(self, flow: SceneFlow):
        await flow.reply(
            f"Make your *{flow.data['wallet_label']}* wallet the default?",
            reply_markup=confirm_keyboard("confirm_default_wallet"),
        )

    async def select_wallet(self, flow: SceneFlow, event: Event):
        wallet_id = (event.action.params or [None])[0]
        known = flow.data.get("wallets") or {}
        if wallet_id not in known:
            return
        flow.data["wallet_id"] = wallet_id
        flow.data["wallet_label"] = known[wallet_id]
        flow.advance()

    async def confirm(self, flow: SceneFlow, event: Event):
        token = await require_token(flow)
        if token is None:
            return
        result = await flow.services.wallets.set_default_wallet(token, flow.data["wallet_id"])
        if result is None:
            await fail_and_leave(flow, "Failed to Set Default Wallet")
            return
        await flow.reply(f"✅ Your *{flow.data['wallet_label']}* wallet is now the default.",
                         reply_markup=back_to_menu_keyboard())
        flow.leave()
