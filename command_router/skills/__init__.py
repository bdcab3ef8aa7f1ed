from command_router.skills.interface import CommandSpec, Skill, command
from command_router.skills.registry import SkillRegistry
from command_router.skills.help import HelpSkill
from command_router.skills.remote_exec import RemoteExecSkill
from command_router.skills.vercel import VercelSkill

__all__ = [
    "CommandSpec",
    "HelpSkill",
    "RemoteExecSkill",
    "Skill",
    "SkillRegistry",
    "VercelSkill",
    "command",
]
