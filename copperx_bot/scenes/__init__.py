from copperx_bot.scenes.auth_scene import AuthScene
from copperx_bot.scenes.base import Scene, SceneFlow, SceneManager, WizardScene
from copperx_bot.scenes.batch_scene import BatchSendScene
from copperx_bot.scenes.payee_scenes import CreatePayeeScene, RemovePayeeScene
from copperx_bot.scenes.transfer_scene import TransferScene
from copperx_bot.scenes.wallet_scenes import CreateWalletScene, SetDefaultWalletScene
from copperx_bot.scenes.withdraw_scene import WithdrawScene


def build_scene_manager() -> SceneManager:
    return SceneManager([
        AuthScene(),
        TransferScene(),
        BatchSendScene(),
        WithdrawScene(),
        CreatePayeeScene(),
        RemovePayeeScene(),
        CreateWalletScene(),
        SetDefaultWalletScene(),
    ])


__all__ = [
    "AuthScene",
    "BatchSendScene",
    "CreatePayeeScene",
    "CreateWalletScene",
    "RemovePayeeScene",
    "Scene",
    "SceneFlow",
    "SceneManager",
    "SetDefaultWalletScene",
    "TransferScene",
    "WithdrawScene",
    "WizardScene",
    "build_scene_manager",
]
