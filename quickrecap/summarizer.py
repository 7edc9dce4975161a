"""
Transcript summarisation with a local T5 encoder/decoder pair.

The model is treated as two opaque graphs: an encoder that maps a padded
token buffer to hidden states, and a decoder that maps the encoder output
plus the tokens generated so far to vocabulary logits.  This module drives
them greedily:

* the transcript is tokenised and split into chunks of ``CHUNK_SIZE`` ids,
* chunks shorter than ``MIN_CHUNK_TOKENS`` are skipped,
* every remaining chunk is encoded once and then decoded one token at a
  time, feeding each argmax token back in, until the end-of-sequence token
  appears or the decoder buffer is full.

The summaries of all chunks are joined, one per line.
"""

from __future__ import annotations

import json
import logging
import threading
from typing import List, Tuple

import numpy as np
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from . import config
from .errors import ModelLoadError, ModelNotLoadedError, SummarizationError
from .observable import BehaviorValue

logger = logging.getLogger(__name__)


@retry(
    retry=retry_if_exception_type(OSError),
    wait=wait_exponential(multiplier=1),
    stop=stop_after_attempt(3),
    reraise=True,
)
def _from_pretrained(loader, name: str):
    return loader.from_pretrained(name)


class T5Encoder:
    """Runs the encoder half of a T5 model on a padded token buffer."""

    def __init__(self, model):
        self.model = model

    def prediction(self, input_ids: np.ndarray, attention_mask: np.ndarray) -> np.ndarray:
        import torch

        with torch.no_grad():
            output = self.model(
                input_ids=torch.from_numpy(input_ids).long(),
                attention_mask=torch.from_numpy(attention_mask).long(),
            )
        return output.last_hidden_state.numpy()


class T5Decoder:
    """Runs the decoder half (plus LM head) of a T5 model."""

    def __init__(self, model):
        self.model = model

    def prediction(
        self,
        decoder_input_ids: np.ndarray,
        decoder_attention_mask: np.ndarray,
        encoder_last_hidden_state: np.ndarray,
        encoder_attention_mask: np.ndarray,
    ) -> np.ndarray:
        import torch
        from transformers.modeling_outputs import BaseModelOutput

        with torch.no_grad():
            output = self.model(
                encoder_outputs=BaseModelOutput(
                    last_hidden_state=torch.from_numpy(encoder_last_hidden_state)
                ),
                attention_mask=torch.from_numpy(encoder_attention_mask).long(),
                decoder_input_ids=torch.from_numpy(decoder_input_ids).long(),
                decoder_attention_mask=torch.from_numpy(decoder_attention_mask).long(),
            )
        return output.logits.numpy()


class SummarizationService:
    """Summarises text with a greedily decoded T5 model."""

    def __init__(
        self,
        tokenizer=None,
        encoder=None,
        decoder=None,
        *,
        model_name: str = config.SUMMARY_MODEL,
        max_sequence_length: int = config.MAX_SEQUENCE_LENGTH,
        chunk_size: int = config.CHUNK_SIZE,
        min_chunk_tokens: int = config.MIN_CHUNK_TOKENS,
    ):
        self.model_name = model_name
        self.max_sequence_length = max_sequence_length
        self.chunk_size = chunk_size
        self.min_chunk_tokens = min_chunk_tokens
        self.tokenizer = tokenizer
        self.encoder = encoder
        self.decoder = decoder
        self.is_model_loaded = BehaviorValue(
            tokenizer is not None and encoder is not None and decoder is not None
        )

    def load(self) -> None:
        """Load the tokenizer and both model halves.

        Raises:
            ModelLoadError: If any part of the model cannot be loaded.
        """
        from transformers import AutoTokenizer, T5ForConditionalGeneration

        logger.info(json.dumps({"event": "summary_model_loading", "model": self.model_name}))
        try:
            tokenizer = _from_pretrained(AutoTokenizer, self.model_name)
            model = _from_pretrained(T5ForConditionalGeneration, self.model_name)
        except (OSError, ValueError) as exc:
            raise ModelLoadError(f"Could not load T5 model {self.model_name}: {exc}") from exc
        model.eval()
        self.tokenizer = tokenizer
        self.encoder = T5Encoder(model.get_encoder())
        self.decoder = T5Decoder(model)
        self.is_model_loaded.accept(True)
        logger.info(json.dumps({"event": "summary_model_loaded", "model": self.model_name}))

    def load_async(self) -> threading.Thread:
        """Load the models on a background thread."""

        def _run() -> None:
            try:
                self.load()
            except Exception:
                logger.exception("Error loading T5 models")

        thread = threading.Thread(target=_run, name="t5-loader", daemon=True)
        thread.start()
        return thread

    def summarize(self, input_text: str) -> str:
        """Summarise ``input_text`` chunk by chunk, one summary per line.

        Raises:
            ModelNotLoadedError: If the models have not finished loading.
            SummarizationError: If the encoder or decoder fails.
        """
        if not self.is_model_loaded.value:
            raise ModelNotLoadedError("summarisation models are not loaded")
        return_text = ""
        input_ids = list(self.tokenizer(input_text)["input_ids"])
        for chunk in self.chunks(input_ids):
            if len(chunk) < self.min_chunk_tokens:
                logger.info("Skipping %d-token chunk", len(chunk))
                continue
            last_hidden_state, attention_mask = self.encode(chunk)
            return_text += self.decode(last_hidden_state, attention_mask)
            return_text += "\n"
        return return_text

    def encode(self, input_ids: List[int]) -> Tuple[np.ndarray, np.ndarray]:
        """Run the encoder on one chunk.

        Returns:
            The encoder's last hidden state and the attention mask it saw.
        """
        input_buffer = self.create_input(input_ids)
        attention_mask = self.create_attention_mask(input_ids)
        try:
            last_hidden_state = self.encoder.prediction(input_buffer, attention_mask)
        except Exception as exc:
            raise SummarizationError(f"Encoder failed: {exc}") from exc
        return last_hidden_state, attention_mask

    def decode(self, last_hidden_state: np.ndarray, attention_mask: np.ndarray) -> str:
        """Greedily generate summary text from an encoded chunk."""
        start = config.DECODER_START_TOKEN_ID
        decoder_input_ids = self.create_input([start])
        decoder_attention_mask = self.create_attention_mask([start])
        last_token = start
        current_token_index = 0
        output_tokens: List[int] = []

        while last_token != config.EOS_TOKEN_ID:
            if current_token_index >= self.max_sequence_length - 1:
                logger.warning(
                    "Decoder buffer full after %d tokens without end of sequence",
                    current_token_index,
                )
                break
            try:
                logits = self.decoder.prediction(
                    decoder_input_ids,
                    decoder_attention_mask,
                    last_hidden_state,
                    attention_mask,
                )
            except Exception as exc:
                raise SummarizationError(f"Decoder failed: {exc}") from exc
            last_token = self.get_max_index(logits, current_token_index)
            logger.debug("Token %d -> %d", current_token_index, last_token)
            output_tokens.append(last_token)
            current_token_index += 1
            decoder_input_ids[0, current_token_index] = last_token
            decoder_attention_mask[0, current_token_index] = 1

        if output_tokens and output_tokens[-1] == config.EOS_TOKEN_ID:
            output_tokens = output_tokens[:-1]
        return self.tokenizer.decode(output_tokens, skip_special_tokens=True)

    def _check_length(self, input_ids: List[int]) -> None:
        if not 0 < len(input_ids) <= self.max_sequence_length:
            raise ValueError(
                f"Input length must be between 1 and {self.max_sequence_length}"
            )

    def create_attention_mask(self, input_ids: List[int]) -> np.ndarray:
        self._check_length(input_ids)
        mask = np.zeros((1, self.max_sequence_length), dtype=np.int32)
        mask[0, : len(input_ids)] = 1
        return mask

    def create_input(self, input_ids: List[int]) -> np.ndarray:
        self._check_length(input_ids)
        buffer = np.zeros((1, self.max_sequence_length), dtype=np.int32)
        buffer[0, : len(input_ids)] = input_ids
        return buffer

    def chunks(self, input_ids: List[int]) -> List[List[int]]:
        return [
            input_ids[i : i + self.chunk_size]
            for i in range(0, len(input_ids), self.chunk_size)
        ]

    @staticmethod
    def get_max_index(logits: np.ndarray, token_index: int) -> int:
        """Return the highest-scoring vocabulary id at ``token_index``.

        Ties resolve to the lowest id.
        """
        return int(np.argmax(logits[0, token_index]))
