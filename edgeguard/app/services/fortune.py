"""Fortune-telling prompt for the DeepSeek chat completion proxy."""

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field

FORTUNE_SYSTEM_PROMPT = """You are a fortune-telling master. I will provide you with some basic information, and I would like you to use Chinese metaphysics to make some predictions based on it. Please output the prediction in JSON format.
EXAMPLE JSON OUTPUT:
{
  "fortuneYearScore": 0,
  "careerPersonality": "你拥有强烈的事业心和竞争意识，愿意不断追求更高的目标。面对变化时，能够迅速调整策略，适应新环境。",
  "annualFortune": "你的创新精神在2025年会得到充分发挥，适合在新技术、新项目或新市场中寻找突破口。",
  "monthlyFortune": {
    "January": {"score": 85, "fortune": "新的一年，机会与挑战并存。勇敢迎接工作和学业上的挑战，您会逐渐找到属于自己的节奏。"},
    ...
    "December": {"score": 70, "fortune": "新的一年，充满希望与可能。每一份付出都将化为未来的惊喜与成长。"}
  },
  "careerSignature": "靈籤求得第一枝 龍虎風雲際會時 一旦凌霄揚自樂 任君來往赴瑤池",
  "annualSummary": "2025年将是充满挑战与机遇的一年，通过调整心态、增强沟通和关注健康，您将能够顺利应对挑战。"
}
"""


class FortuneRequest(BaseModel):
    """Birth data sent by the client."""
    model_config = ConfigDict(populate_by_name=True)

    birth_date: str = Field(..., alias="birthDate", min_length=1)
    birth_time: str = Field(..., alias="birthTime", min_length=1)
    birth_place: str = Field(..., alias="birthPlace", min_length=1)


def build_fortune_payload(request: FortuneRequest, model: str = "deepseek-chat") -> Dict[str, Any]:
    """Build the chat completion request for a fortune reading."""
    return {
        "messages": [
            {"role": "system", "content": FORTUNE_SYSTEM_PROMPT},
            {
                "role": "user",
                "content": (
                    f"Hello, my birthday is on {request.birth_date}, at {request.birth_time}. "
                    f"I was born in {request.birth_place}."
                ),
            },
        ],
        "model": model,
        "frequency_penalty": 0,
        "max_tokens": 2048,
        "presence_penalty": 0,
        "response_format": {"type": "json_object"},
        "stream": True,
        "temperature": 1.5,
        "top_p": 1,
    }
